TRUNCATION_MARKER = "\n\n// ... Code truncated for analysis ...\n\n"
DEFAULT_MAX_LENGTH = 6000
MIN_MAX_LENGTH = 2 * len(TRUNCATION_MARKER)


def truncate_code(code: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Keep the head and tail of ``code`` so it fits an LLM token budget.

    Short inputs come back unchanged. Longer inputs keep ``max_length // 2``
    characters from each end joined by :data:`TRUNCATION_MARKER`, so the
    result is never longer than ``max_length + len(TRUNCATION_MARKER)``.
    """
    max_length = max(max_length, MIN_MAX_LENGTH)
    if len(code) <= max_length:
        return code

    half = max_length // 2
    return f"{code[:half]}{TRUNCATION_MARKER}{code[-half:]}"
