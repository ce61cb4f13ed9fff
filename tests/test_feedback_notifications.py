import pytest

from errors import InvalidRating, ValidationError


@pytest.mark.parametrize("rating", [0, 6, -1, True])
def test_out_of_range_rating_is_rejected(services, store, rating):
    with pytest.raises(InvalidRating):
        services.feedback.submit_feedback("Ada", rating)
    assert store.count_documents("feedback") == 0


@pytest.mark.parametrize("rating", [1, 5])
def test_boundary_ratings_are_accepted(services, rating):
    feedback = services.feedback.submit_feedback("Ada", rating, comment="  Lovely  ")

    assert feedback.rating == rating
    assert feedback.comment == "Lovely"
    assert feedback.order_id is None


def test_invalid_rating_is_a_validation_error(services):
    with pytest.raises(ValidationError):
        services.feedback.submit_feedback("Ada", 9)


def test_name_is_required(services):
    with pytest.raises(ValidationError):
        services.feedback.submit_feedback(" ", 4)


def test_feedback_newest_first_and_per_order(services):
    first = services.feedback.submit_feedback("Ada", 4, order_id="o1")
    second = services.feedback.submit_feedback("Grace", 5)
    third = services.feedback.submit_feedback("Linus", 3, order_id="o1")

    assert [f.id for f in services.feedback.list_feedback()] == [third.id, second.id, first.id]
    assert [f.id for f in services.feedback.list_order_feedback("o1")] == [third.id, first.id]


def test_notify_does_not_check_order(services):
    note = services.notifications.notify("no-such-order", " Your pizza is ready ")

    assert note.order_id == "no-such-order"
    assert note.message == "Your pizza is ready"
    assert note.sent_at is not None


def test_notify_requires_message(services):
    with pytest.raises(ValidationError):
        services.notifications.notify("o1", "   ")


def test_notifications_are_listed_newest_first(services):
    first = services.notifications.notify("o1", "Preparing")
    second = services.notifications.notify("o2", "Ready")
    third = services.notifications.notify("o1", "Ready for pickup")

    assert [n.id for n in services.notifications.list_notifications()] == [third.id, second.id, first.id]
    assert [n.id for n in services.notifications.list_notifications("o1")] == [third.id, first.id]
