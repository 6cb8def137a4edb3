"""Tests for the event list."""

import pytest

from abmkit.time import EventList, ScheduledEvent


class TestScheduledEvent:
    """Tests for ScheduledEvent."""

    def test_ordering(self):
        """Test that events order by time, then by insertion."""
        early = ScheduledEvent(1.0, 1, 0, 1.0, seq=5)
        late = ScheduledEvent(2.0, 1, 0, 1.0, seq=0)
        tie = ScheduledEvent(1.0, 2, 0, 1.0, seq=6)

        assert early < late
        assert early < tie
        assert not tie < early
        assert "canceled" not in repr(early)


class TestEventList:
    """Tests for EventList."""

    def test_pop_in_time_order(self):
        """Test that events come out sorted by time with FIFO ties."""
        event_list = EventList()
        for time, agent_id in [(3.0, 1), (1.0, 2), (2.0, 3), (1.0, 4)]:
            event_list.add(time, agent_id, 0, 1.0)

        assert len(event_list) == 4
        assert [e.agent_id for e in event_list] == [2, 4, 3, 1]
        popped = [event_list.pop() for _ in range(4)]
        assert [(e.time, e.agent_id) for e in popped] == [
            (1.0, 2),
            (1.0, 4),
            (2.0, 3),
            (3.0, 1),
        ]
        assert event_list.is_empty()

    def test_empty(self):
        """Test peek and pop on an empty list."""
        event_list = EventList()
        with pytest.raises(IndexError):
            event_list.peek()
        with pytest.raises(IndexError):
            event_list.pop()

    def test_cancel(self):
        """Test that canceled events are skipped."""
        event_list = EventList()
        first = event_list.add(1.0, 1, 0, 1.0)
        second = event_list.add(2.0, 2, 0, 1.0)

        event_list.cancel(first)
        assert first.canceled
        assert first not in event_list
        assert second in event_list
        assert len(event_list) == 1
        # the tombstone is still in the heap until it surfaces
        assert event_list.heap_size == 2

        assert event_list.peek() is second
        assert event_list.heap_size == 1

        # canceling twice or after firing is a no-op
        event_list.cancel(first)
        fired = event_list.pop()
        event_list.cancel(fired)
        assert len(event_list) == 0
        assert not fired.canceled

    def test_purge_agent(self):
        """Test that all events of an agent are tombstoned at once."""
        event_list = EventList()
        event_list.add(1.0, 1, 0, 1.0)
        event_list.add(2.0, 1, 1, 1.0)
        other = event_list.add(1.5, 2, 0, 1.0)

        assert len(event_list.events_of(1)) == 2
        assert event_list.purge_agent(1) == 2
        assert event_list.purge_agent(1) == 0
        assert event_list.events_of(1) == []
        assert len(event_list) == 1
        assert event_list.pop() is other

    def test_compaction(self):
        """Test that the heap is compacted once tombstones dominate."""
        event_list = EventList()
        for agent_id in range(200):
            event_list.add(float(agent_id), agent_id, 0, 1.0)
        for agent_id in range(150):
            event_list.purge_agent(agent_id)

        assert len(event_list) == 50
        assert event_list.heap_size < 200
        assert [e.agent_id for e in event_list] == list(range(150, 200))
        assert event_list.pop().agent_id == 150

    def test_clear(self):
        """Test removing all events."""
        event_list = EventList()
        event_list.add(1.0, 1, 0, 1.0)
        event_list.clear()
        assert event_list.is_empty()
        assert event_list.heap_size == 0
