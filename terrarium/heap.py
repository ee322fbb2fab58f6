"""First-fit heap allocator with coalescing free list, over a simulated address range."""

from __future__ import annotations

import bisect
from dataclasses import dataclass

DEFAULT_TOTAL_SIZE = 15360
DEFAULT_ALIGNMENT = 8
DEFAULT_POINTER_SIZE = 4


@dataclass(frozen=True)
class HeapStats:
    """Snapshot of the heap's free space and usage counters."""

    available_heap_space: int
    largest_free_block: int
    smallest_free_block: int
    free_blocks: int
    minimum_ever_free_bytes: int
    successful_allocations: int
    successful_frees: int


class InvalidFreeError(ValueError):
    """An address was freed that is not a live allocation of this heap."""


class Heap:
    """Allocator over ``total_size`` bytes starting at address 0.

    Every block carries a header of two pointer-sized words rounded up to the
    alignment. Free blocks are kept in address order; a freed block is merged
    with its neighbours when they touch. The heap is set up lazily on the
    first allocation.
    """

    def __init__(
        self,
        total_size: int = DEFAULT_TOTAL_SIZE,
        alignment: int = DEFAULT_ALIGNMENT,
        pointer_size: int = DEFAULT_POINTER_SIZE,
    ) -> None:
        if alignment <= 0 or alignment & (alignment - 1):
            raise ValueError(f"alignment must be a power of two, got {alignment}")
        if pointer_size <= 0:
            raise ValueError(f"pointer size must be positive, got {pointer_size}")
        self.total_size = total_size
        self.alignment = alignment
        self.pointer_size = pointer_size
        self._mask = alignment - 1
        self.header_size = self._align_up(2 * pointer_size)
        self.minimum_block_size = self.header_size * 2
        self._size_max = (1 << (pointer_size * 8)) - 1
        self._allocated_bit = 1 << (pointer_size * 8 - 1)
        if total_size < 2 * self.header_size:
            raise ValueError(f"heap of {total_size} bytes is too small")

        self._free: list[tuple[int, int]] = []
        self._allocated: dict[int, int] = {}
        self._end: int | None = None
        self._free_bytes = 0
        self._min_ever_free = 0
        self._allocations = 0
        self._frees = 0

    def _align_up(self, value: int) -> int:
        if value & self._mask:
            value += self.alignment - (value & self._mask)
        return value

    @property
    def free_bytes(self) -> int:
        return self._free_bytes

    @property
    def minimum_ever_free_bytes(self) -> int:
        return self._min_ever_free

    def _init(self) -> None:
        end = (self.total_size - self.header_size) & ~self._mask
        self._end = end
        self._free = [(0, end)]
        self._free_bytes = end
        self._min_ever_free = end

    def _insert_free(self, address: int, size: int) -> None:
        position = bisect.bisect_left(self._free, (address,))
        if position > 0:
            prev_address, prev_size = self._free[position - 1]
            if prev_address + prev_size == address:
                position -= 1
                del self._free[position]
                address, size = prev_address, prev_size + size
        if position < len(self._free):
            next_address, next_size = self._free[position]
            if address + size == next_address:
                del self._free[position]
                size += next_size
        self._free.insert(position, (address, size))

    def malloc(self, size: int) -> int:
        """Allocate ``size`` bytes and return the address of the usable space.

        Raises :class:`ValueError` for a non-positive size and
        :class:`MemoryError` when no free block is large enough.
        """
        if self._end is None:
            self._init()
        if size <= 0:
            raise ValueError(f"allocation size must be positive, got {size}")
        if size & self._allocated_bit or size > self._size_max:
            raise MemoryError(f"allocation of {size} bytes is too large")

        wanted = self._align_up(size + self.header_size)
        if wanted > self._free_bytes:
            raise MemoryError(f"cannot allocate {size} bytes")

        for position, (address, block_size) in enumerate(self._free):
            if block_size >= wanted:
                break
        else:
            raise MemoryError(f"no free block large enough for {size} bytes")

        del self._free[position]
        if block_size - wanted > self.minimum_block_size:
            self._insert_free(address + wanted, block_size - wanted)
            block_size = wanted

        self._free_bytes -= block_size
        self._min_ever_free = min(self._min_ever_free, self._free_bytes)
        self._allocated[address] = block_size
        self._allocations += 1
        return address + self.header_size

    def free(self, address: int | None) -> None:
        """Return an allocation to the heap; ``None`` is ignored."""
        if address is None:
            return
        block = address - self.header_size
        size = self._allocated.pop(block, None)
        if size is None:
            raise InvalidFreeError(f"address {address:#x} is not allocated")
        self._free_bytes += size
        self._insert_free(block, size)
        self._frees += 1

    def stats(self) -> HeapStats:
        sizes = [size for _, size in self._free]
        return HeapStats(
            available_heap_space=self._free_bytes,
            largest_free_block=max(sizes, default=0),
            smallest_free_block=min(sizes, default=self._size_max),
            free_blocks=len(sizes),
            minimum_ever_free_bytes=self._min_ever_free,
            successful_allocations=self._allocations,
            successful_frees=self._frees,
        )