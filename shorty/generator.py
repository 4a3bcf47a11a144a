"""Short code generation.

Generators are stateless producers of candidate codes. They know nothing
about codes already in the store; repeats are expected and resolved by the
allocator retrying against the store's unique index.

Collision odds per attempt are roughly ``existing_codes / 62 ** length``;
with the default length of 6 the code space holds about 5.6e10 codes.
"""

from typing import Protocol

from nanoid import generate

__all__ = ["ALPHABET", "CodeGenerator", "RandomCodeGenerator"]

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


class CodeGenerator(Protocol):
    """Source of candidate short codes."""

    def next(self) -> str: ...


class RandomCodeGenerator:
    """Uniform random codes of a fixed length over the 62-symbol alphabet.

    nanoid draws from os.urandom with a bit mask and rejection sampling, so
    every symbol is equally likely.
    """

    def __init__(self, length: int = 6):
        if not isinstance(length, int) or length < 1:
            raise ValueError(f"length must be a positive integer, got {length!r}")
        self.length = length

    def next(self) -> str:
        return generate(ALPHABET, self.length)

    def __repr__(self) -> str:
        return f"RandomCodeGenerator(length={self.length})"
