"""
Converts OpenAlex's inverted-index abstracts back into plain text.
"""


def abstract_from_inverted_index(inverted_index: dict[str, list[int]] | None) -> str:
    """
    Rebuilds abstract text from a `{word: [positions]}` mapping.

    Input:
    {'Despite': [0], 'growing': [1], 'interest': [2], 'in': [3, 6], 'Open': [4], 'Access': [5]}

    Output:
    'Despite growing interest in Open Access in'

    Words are placed by position; gaps in the positions are skipped rather than filled.
    """
    if not inverted_index:
        return ''
    positioned: list[tuple[int, str]] = []
    for word, positions in inverted_index.items():
        for pos in positions:
            positioned.append((pos, word))
    positioned.sort()
    return ' '.join(word for _pos, word in positioned)


def convert_work_abstract(work: dict[str, object]) -> dict[str, object]:
    """
    Adds a plain-text `abstract` to a work and drops its `abstract_inverted_index`.
    Works without an index are left without an `abstract` key. Returns the same dict, modified in place.
    Called by: PaginationDriver, via the works facade.
    """
    inverted: object = work.pop('abstract_inverted_index', None)
    if isinstance(inverted, dict):
        work['abstract'] = abstract_from_inverted_index(inverted)
    return work
