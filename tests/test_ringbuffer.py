import pytest

from comchan.core.ringbuffer import RingBuffer


def test_append_evicts_oldest_when_full() -> None:
    buf = RingBuffer[int](3)
    assert [buf.append(i) for i in range(5)] == [None, None, None, 0, 1]
    assert buf.to_list() == [2, 3, 4]
    assert buf[0] == 2
    assert buf[-1] == 4


def test_resize_keeps_newest_entries() -> None:
    buf = RingBuffer[int](5)
    for i in range(5):
        buf.append(i)
    buf.resize(2)
    assert buf.capacity == 2
    assert buf.to_list() == [3, 4]

    buf.resize(4)
    buf.append(5)
    assert buf.to_list() == [3, 4, 5]


def test_index_errors() -> None:
    buf = RingBuffer[int](2)
    with pytest.raises(IndexError):
        buf[0]
    buf.append(1)
    with pytest.raises(IndexError):
        buf[1]


@pytest.mark.parametrize("capacity", [0, -1])
def test_capacity_must_be_positive(capacity: int) -> None:
    with pytest.raises(ValueError):
        RingBuffer(capacity)
