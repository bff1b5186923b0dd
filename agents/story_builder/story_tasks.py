"""Symbolic implementations and entry point for the story-builder agent."""

STORY_PATH = "story.txt"


def _count_sentences(content):
    return len([line for line in content.splitlines() if line.strip()])


def read_existing_story(inputs, context):
    if not context.invoke_tool("workspace", {"operation": "exists", "path": STORY_PATH}):
        return {"content": "", "sentence_count": 0}
    content = context.invoke_tool("workspace", {"operation": "read", "path": STORY_PATH})
    if isinstance(content, dict) and "error" in content:
        raise RuntimeError(content["error"])
    return {"content": content, "sentence_count": _count_sentences(content)}


def append_to_story(inputs, context):
    existing = read_existing_story({}, context)
    prefix = "\n" if existing["content"] else ""
    result = context.invoke_tool(
        "workspace",
        {"operation": "append", "path": STORY_PATH, "content": prefix + inputs["sentence"]},
    )
    if "error" in result:
        return {"success": False, "total_sentences": existing["sentence_count"]}
    return {"success": True, "total_sentences": existing["sentence_count"] + 1}


def main(inputs, agent):
    story = agent.execute_task("read_existing_story")
    sentence = agent.execute_task(
        "generate_next_sentence", {"existing_content": story["content"]}
    )
    result = agent.execute_task("append_to_story", {"sentence": sentence["sentence"]})
    return {"added_sentence": sentence["sentence"], "total_sentences": result["total_sentences"]}
