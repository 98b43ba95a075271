"""Descriptor readiness set backed by 64-bit words."""

from typing import Iterable, List


WORD_BITS = 64


class FdSet:
    """
    Bitmask of file descriptors, laid out as 64-bit words like the
    C fd_set. Used to drive select-style readiness polling.
    """

    def __init__(self, fds: Iterable[int] = ()):
        self._words: List[int] = []
        for fd in fds:
            self.set(fd)

    def _locate(self, fd: int):
        if fd < 0:
            raise ValueError(f"invalid file descriptor: {fd}")
        return fd // WORD_BITS, 1 << (fd % WORD_BITS)

    def set(self, fd: int) -> None:
        index, bit = self._locate(fd)
        if index >= len(self._words):
            self._words.extend([0] * (index + 1 - len(self._words)))
        self._words[index] |= bit

    def clear(self, fd: int) -> None:
        index, bit = self._locate(fd)
        if index < len(self._words):
            self._words[index] &= ~bit

    def is_set(self, fd: int) -> bool:
        index, bit = self._locate(fd)
        return index < len(self._words) and bool(self._words[index] & bit)

    def fds(self) -> List[int]:
        """Descriptors in the set, ascending."""
        result = []
        for index, word in enumerate(self._words):
            base = index * WORD_BITS
            while word:
                low = word & -word
                result.append(base + low.bit_length() - 1)
                word ^= low
        return result

    @property
    def max_fd(self) -> int:
        """Highest descriptor in the set, -1 when empty."""
        fds = self.fds()
        return fds[-1] if fds else -1

    @property
    def words(self) -> List[int]:
        return list(self._words)

    def __len__(self) -> int:
        return sum(bin(word).count("1") for word in self._words)

    def __contains__(self, fd: int) -> bool:
        return self.is_set(fd)
