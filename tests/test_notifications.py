from safesteps.notifications import (
    LoggingNotificationSink,
    RateLimitedNotifier,
    within_notification_window,
)

from conftest import ManualClock


def test_rate_limit_drops_repeats_inside_window() -> None:
    timer = ManualClock(0.0)
    delivered: list[tuple[str, str]] = []
    notifier = RateLimitedNotifier(lambda t, b: delivered.append((t, b)), timer=timer)

    assert notifier.send_now("Cannot Start", "body", 300, "locationDisabled")
    timer.advance(299)
    assert not notifier.send_now("Cannot Start", "body", 300, "locationDisabled")
    timer.advance(2)
    assert notifier.send_now("Cannot Start", "body", 300, "locationDisabled")

    assert len(delivered) == 2


def test_rate_limit_keys_are_independent() -> None:
    timer = ManualClock(0.0)
    delivered: list[str] = []
    notifier = RateLimitedNotifier(lambda t, _b: delivered.append(t), timer=timer)

    notifier.send_now("A", "body", 60, "a")
    notifier.send_now("B", "body", 60, "b")
    notifier.send_now("A again", "body", 60, "a")

    assert delivered == ["A", "B"]


def test_unlimited_notifications_always_deliver() -> None:
    delivered: list[str] = []
    notifier = RateLimitedNotifier(lambda t, _b: delivered.append(t))
    notifier.send_now("Movement Detected", "body")
    notifier.send_now("Movement Detected", "body")
    assert delivered == ["Movement Detected", "Movement Detected"]


def test_delivery_failure_returns_false() -> None:
    def deliver(_title: str, _body: str) -> None:
        raise OSError("notification service down")

    assert not RateLimitedNotifier(deliver).send_now("t", "b")


def test_logging_sink_records_alerts() -> None:
    sink = LoggingNotificationSink()
    sink.send_now("Movement Detected", "Don't forget to start the walking session!")
    assert sink.sent == [("Movement Detected", "Don't forget to start the walking session!")]


def test_notification_window() -> None:
    assert within_notification_window(8)
    assert within_notification_window(17)
    assert not within_notification_window(18)
    assert not within_notification_window(7)
    assert within_notification_window(23, all_day=True)
