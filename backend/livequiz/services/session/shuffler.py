import random
from typing import List, Optional


def shuffled_indices(count: int, rng: Optional[random.Random] = None) -> List[int]:
    """Return a uniformly random permutation of ``range(count)``.

    ``random.shuffle`` is a Fisher-Yates shuffle, so every ordering is
    equally likely. Pass ``rng`` to make the order reproducible in tests.
    """
    sequence = list(range(max(0, int(count))))
    (rng or random).shuffle(sequence)
    return sequence
