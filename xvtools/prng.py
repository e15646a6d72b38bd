"""Park-Miller "minimal standard" pseudo-random number generator."""

from __future__ import annotations

from typing import Iterator

__all__ = ["do_rand", "ParkMiller"]

_MASK64 = (1 << 64) - 1


def do_rand(ctx: int) -> int:
    """Advance the state *ctx* and return the new state.

    The result lies in ``[0, 0x7ffffffd]`` and is also the next state.
    The state is treated as an unsigned 64-bit value.
    """
    # x = (7^5 * x) mod (2^31 - 1), computed with Schrage's method:
    # (2^31 - 1) = 127773 * (7^5) + 2836
    x = ((ctx & _MASK64) % 0x7FFFFFFE) + 1
    hi, lo = divmod(x, 127773)
    x = 16807 * lo - 2836 * hi
    if x < 0:
        x += 0x7FFFFFFF
    return x - 1


class ParkMiller:
    """An endless stream of pseudo-random numbers from a seed."""

    def __init__(self, seed: int = 1) -> None:
        self.state = seed & _MASK64

    def next(self) -> int:
        """Return the next number and advance the state."""
        self.state = do_rand(self.state)
        return self.state

    def __iter__(self) -> Iterator[int]:
        return self

    def __next__(self) -> int:
        return self.next()