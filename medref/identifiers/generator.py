import random
import time
from collections.abc import Callable

APPLICATION_PREFIX = "APP"
ARCHIVE_PREFIX = "ARC"


def _unix_millis() -> int:
    return int(time.time() * 1000)


class IdentifierGenerator:
    """Human-readable numbers of the form ``{prefix}-{unix_millis}-{NNNN}``.

    Uniqueness is probabilistic. The unique constraints in the store are the
    authority; callers regenerate on conflict.
    """

    def __init__(
        self,
        clock: Callable[[], int] = _unix_millis,
        rng: random.Random | None = None,
    ) -> None:
        self._clock = clock
        self._rng = rng if rng is not None else random.SystemRandom()

    def generate(self, prefix: str) -> str:
        suffix = self._rng.randint(1, 9999)
        return f"{prefix}-{self._clock()}-{suffix:04d}"
