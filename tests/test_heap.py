import pytest

from terrarium.heap import Heap, HeapStats, InvalidFreeError


def _initial_free(heap: Heap) -> int:
    heap.free(heap.malloc(1))
    return heap.stats().available_heap_space


def test_stats_before_first_allocation_are_empty():
    stats = Heap().stats()
    assert stats.available_heap_space == 0
    assert stats.free_blocks == 0
    assert stats.largest_free_block == 0
    assert stats.successful_allocations == 0


def test_first_allocation_starts_after_header():
    heap = Heap()
    assert heap.header_size == 8
    assert heap.malloc(1) == heap.header_size


def test_header_size_for_wide_pointers():
    heap = Heap(total_size=1024, alignment=8, pointer_size=8)
    assert heap.header_size == 16
    assert heap.malloc(4) == heap.header_size


def test_initial_free_space_fits_in_heap():
    heap = Heap(total_size=15360)
    free = _initial_free(heap)
    assert 0 < free <= 15360 - heap.header_size
    assert heap.stats().largest_free_block == free
    assert heap.stats().free_blocks == 1


def test_addresses_are_aligned_and_disjoint():
    heap = Heap()
    sizes = [1, 7, 13, 64, 3, 100]
    addresses = [heap.malloc(size) for size in sizes]
    assert all(address % heap.alignment == 0 for address in addresses)
    spans = sorted(zip(addresses, sizes))
    for (first, first_size), (second, _) in zip(spans, spans[1:]):
        assert first + first_size <= second - heap.header_size


def test_free_everything_restores_single_block():
    heap = Heap()
    initial = _initial_free(heap)
    addresses = [heap.malloc(size) for size in (10, 50, 20, 300)]
    assert heap.stats().available_heap_space < initial
    for address in (addresses[1], addresses[3], addresses[0], addresses[2]):
        heap.free(address)
    stats = heap.stats()
    assert stats.available_heap_space == initial
    assert stats.largest_free_block == initial
    assert stats.free_blocks == 1


def test_freed_neighbours_coalesce():
    heap = Heap()
    a = heap.malloc(32)
    b = heap.malloc(32)
    c = heap.malloc(32)
    heap.malloc(32)
    heap.free(a)
    heap.free(c)
    assert heap.stats().free_blocks == 3
    heap.free(b)
    assert heap.stats().free_blocks == 2


def test_first_fit_reuses_freed_block():
    heap = Heap()
    a = heap.malloc(32)
    heap.malloc(32)
    heap.free(a)
    assert heap.malloc(16) == a


def test_small_remainder_is_not_split():
    heap = Heap(total_size=64)
    initial = _initial_free(heap)
    heap.malloc(initial - heap.header_size - heap.minimum_block_size)
    stats = heap.stats()
    assert stats.available_heap_space == 0
    assert stats.free_blocks == 0


def test_free_bytes_and_allocated_add_up():
    heap = Heap()
    initial = _initial_free(heap)
    a = heap.malloc(100)
    heap.malloc(200)
    used = initial - heap.free_bytes
    heap.free(a)
    assert initial - heap.free_bytes < used
    assert heap.free_bytes == heap.stats().available_heap_space


def test_minimum_ever_tracks_low_watermark():
    heap = Heap()
    big = heap.malloc(4000)
    low = heap.free_bytes
    heap.free(big)
    stats = heap.stats()
    assert stats.minimum_ever_free_bytes == low
    assert stats.minimum_ever_free_bytes < stats.available_heap_space
    assert heap.minimum_ever_free_bytes == low


def test_counters_count_successes_only():
    heap = Heap(total_size=256)
    a = heap.malloc(8)
    b = heap.malloc(8)
    with pytest.raises(MemoryError):
        heap.malloc(10_000)
    heap.free(a)
    stats = heap.stats()
    assert isinstance(stats, HeapStats)
    assert stats.successful_allocations == 2
    assert stats.successful_frees == 1
    heap.free(b)
    assert heap.stats().successful_frees == 2


def test_too_large_allocation_raises_memory_error():
    heap = Heap(total_size=128)
    with pytest.raises(MemoryError):
        heap.malloc(128)


def test_top_bit_size_raises_memory_error():
    heap = Heap()
    with pytest.raises(MemoryError):
        heap.malloc(1 << 31)


def test_exhaustion_raises_memory_error():
    heap = Heap(total_size=256)
    with pytest.raises(MemoryError):
        for _ in range(100):
            heap.malloc(16)
    assert heap.stats().successful_allocations > 0


def test_zero_size_raises_value_error():
    with pytest.raises(ValueError):
        Heap().malloc(0)


def test_double_free_raises():
    heap = Heap()
    a = heap.malloc(16)
    heap.free(a)
    with pytest.raises(InvalidFreeError):
        heap.free(a)


def test_free_of_unknown_address_raises():
    heap = Heap()
    a = heap.malloc(16)
    with pytest.raises(InvalidFreeError):
        heap.free(a + heap.alignment)


def test_free_none_leaves_heap_unchanged():
    heap = Heap()
    heap.malloc(16)
    before = heap.stats()
    heap.free(None)
    assert heap.stats() == before


def test_bad_alignment_rejected():
    with pytest.raises(ValueError):
        Heap(alignment=6)