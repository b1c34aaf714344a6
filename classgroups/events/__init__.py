"""Live roster updates: notifier plus SSE framing."""

from classgroups.events.notifier import ChangeNotifier, Subscription
from classgroups.events.sse import SSE_HEADERS, event_stream, format_sse

__all__ = ["ChangeNotifier", "Subscription", "SSE_HEADERS", "event_stream", "format_sse"]
