"""Title derivation for notes saved without an explicit title."""


def generate_simple_title(content: str) -> str:
    """Derive a short title from note content.

    Q&A notes ("Q: ...\\n\\nA: ...") use the question. Otherwise the first line
    is used when it is short enough, falling back to the first 50 characters
    cut at a word boundary.
    """
    content = content.strip()

    if content.startswith("Q:") and "\n\nA:" in content:
        question = content[2 : content.index("\n\nA:")].strip()
        if len(question) <= 50:
            return question
        return f"{question[:47]}..."

    first_line = content.splitlines()[0].strip() if content else ""
    if first_line and len(first_line) <= 60 and not first_line.startswith("Q:"):
        return first_line

    if len(content) > 50:
        truncated = content[:50]
        last_space = truncated.rfind(" ")
        if last_space > 30:
            return f"{truncated[:last_space]}..."
        return f"{truncated}..."

    return content


def resolve_title(content: str, title: str | None) -> str:
    """Use the given title when non-blank, otherwise derive one from content."""
    if title is not None and title.strip():
        return title.strip()
    return generate_simple_title(content)
