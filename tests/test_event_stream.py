"""Tests for event_stream.py - bounded event queue with requeue on failure."""

import threading
import time

import pytest

from event_stream import Event, EventStream, EventType, StreamError


class TestEvent:
    """Tests for Event."""

    def test_constructors(self):
        assert Event.info('ok').event_type is EventType.INFO
        assert Event.error('bad', 'why').details == 'why'

    def test_to_dict(self):
        assert Event.error('bad', 'why').to_dict() == {
            'event_type': 'ERROR',
            'summary': 'bad',
            'details': 'why',
        }


class TestEventStream:
    """Tests for EventStream delivery."""

    def test_fifo(self):
        stream = EventStream()
        for n in range(3):
            stream.publish(Event.info(f'e{n}'))

        received = []
        while stream.deliver(received.append, timeout=0):
            pass
        assert [e.summary for e in received] == ['e0', 'e1', 'e2']

    def test_deliver_empty_returns_false(self):
        assert EventStream().deliver(lambda e: None, timeout=0.01) is False

    def test_next_blocks_until_published(self):
        stream = EventStream()
        timer = threading.Timer(0.05, stream.publish, args=(Event.info('late'),))
        timer.start()
        event = stream.next(timeout=2)
        timer.join()
        assert event.summary == 'late'

    def test_failed_delivery_is_observed_again(self):
        stream = EventStream()
        stream.publish(Event.info('first'))

        def broken(event):
            raise OSError('connection reset')

        with pytest.raises(StreamError, match='unable to send event: connection reset'):
            stream.deliver(broken, timeout=0)

        received = []
        assert stream.deliver(received.append, timeout=2)
        assert [e.summary for e in received] == ['first']

    def test_requeued_event_may_follow_newer_events(self):
        stream = EventStream()
        stream.publish(Event.info('old'))
        event = stream.next(timeout=0)
        stream.publish(Event.info('new'))
        stream.requeue(event).join(timeout=2)

        assert stream.next(timeout=0).summary == 'new'
        assert stream.next(timeout=0).summary == 'old'

    def test_requeue_does_not_block_when_full(self):
        stream = EventStream(capacity=1)
        stream.publish(Event.info('queued'))

        thread = stream.requeue(Event.info('waiting'))
        assert thread.is_alive()

        assert stream.next(timeout=0).summary == 'queued'
        thread.join(timeout=2)
        assert stream.next(timeout=0).summary == 'waiting'

    def test_stream_until_stopped(self):
        stream = EventStream(poll_interval=0.01)
        stop = threading.Event()
        received = []

        def send(event):
            received.append(event)
            if len(received) == 2:
                stop.set()

        stream.publish(Event.info('a'))
        stream.publish(Event.info('b'))
        stream.stream(send, stop)
        assert [e.summary for e in received] == ['a', 'b']

    def test_stream_returns_when_stop_already_set(self):
        stop = threading.Event()
        stop.set()
        start = time.time()
        EventStream(poll_interval=5).stream(lambda e: None, stop)
        assert time.time() - start < 1

    def test_stream_raises_on_send_failure(self):
        stream = EventStream(poll_interval=0.01)
        stream.publish(Event.info('a'))

        def broken(event):
            raise BrokenPipeError('gone')

        with pytest.raises(StreamError):
            stream.stream(broken)
