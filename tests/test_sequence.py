from clientdesk.extensions import db
from clientdesk.models import SequenceCounter, next_sequence_value
from clientdesk.services.tickets import TICKET_SEQUENCE


def test_factory_seeds_ticket_counter(app):
    with app.app_context():
        assert db.session.get(SequenceCounter, TICKET_SEQUENCE).value == 0


def test_counter_is_created_on_first_use(app):
    with app.app_context():
        db.session.delete(db.session.get(SequenceCounter, TICKET_SEQUENCE))
        db.session.commit()

        assert next_sequence_value(TICKET_SEQUENCE) == 1
        db.session.commit()
        assert next_sequence_value(TICKET_SEQUENCE) == 2
        db.session.commit()
        assert db.session.get(SequenceCounter, TICKET_SEQUENCE).value == 2


def test_unknown_sequence_starts_at_one(app):
    with app.app_context():
        assert next_sequence_value("invoice") == 1
        assert next_sequence_value("invoice") == 2
