from __future__ import annotations


def match_glob(pattern: str, value: str) -> bool:
    """
    Match value against a pattern where `*` stands for any run of characters.

    Literal fragments between stars are located left to right, each search
    starting where the previous match ended. The search is greedy and never
    backtracks, so an early fragment occurrence can block a later alignment.
    A pattern without `*` matches only the identical string.
    """
    if "*" not in pattern:
        return pattern == value

    fragments = pattern.split("*")
    pos = 0
    for i, fragment in enumerate(fragments):
        if not fragment:
            continue
        idx = value.find(fragment, pos)
        if idx == -1:
            return False
        # Only fragments[0] can be non-empty here when the pattern has no leading star.
        if i == 0 and idx != 0:
            return False
        pos = idx + len(fragment)

    if not pattern.endswith("*") and not value.endswith(fragments[-1]):
        return False
    return True
