"""Constant-time comparison for shared secrets (webhook tokens, API keys)."""


def _xor_fold(a: str, b: str) -> tuple[int, int]:
    """Fold both strings into one accumulator.

    Returns ``(accumulator, iterations)``. The loop always runs
    ``max(len(a), len(b))`` times; positions past the end of the shorter
    string read as 0.
    """
    len_a = len(a)
    len_b = len(b)
    acc = len_a ^ len_b
    iterations = 0

    for i in range(max(len_a, len_b)):
        code_a = ord(a[i]) if i < len_a else 0
        code_b = ord(b[i]) if i < len_b else 0
        acc |= code_a ^ code_b
        iterations += 1

    return acc, iterations


def timing_safe_equal(a: str, b: str) -> bool:
    """Return True iff ``a == b``, without an early exit on the first mismatch.

    Wall-clock cost depends only on the longer input, so response timing does
    not reveal how many leading characters of a guessed secret were right.
    """
    acc, _ = _xor_fold(a, b)
    return acc == 0
