# prompts for retrieval-augmented answers

class RagPrompts():
    """
    System prompts for grounding a chat completion in retrieved memory snippets.
    Retrieved snippets are appended as a delimited context block; an empty context set still produces a usable prompt.
    """

    rag_system_prompt = """
    You are a helpful personal assistant with access to notes the user has saved to their memory.

    INSTRUCTIONS
    - Use the context below whenever it is relevant to the user's question.
    - If the context does not contain enough information to answer, say so explicitly instead of making up facts.
    - Never claim something is in the user's memory unless it appears in the context.
    - Keep answers concise and direct.
    """

    no_context_notice = "No relevant memories were found for this question."

    @staticmethod
    def format_context(contexts: list[str]) -> str:
        """Context block appended to a system prompt; numbered so the model can refer to snippets."""
        if not contexts:
            return f"CONTEXT\n{RagPrompts.no_context_notice}"
        snippets = "\n\n".join(f"[{i}] {snippet}" for i, snippet in enumerate(contexts, 1))
        return f"CONTEXT\n---\n{snippets}\n---"

    @staticmethod
    def build_system_prompt(contexts: list[str], base_prompt: str | None = None) -> str:
        base = (base_prompt if base_prompt is not None else RagPrompts.rag_system_prompt).strip()
        return f"{base}\n\n{RagPrompts.format_context(contexts)}"
