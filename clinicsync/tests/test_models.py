"""Schema-level guards declared on the ORM tables."""
from clinicsync.infra.database.models import Appointment, Block


def _index(model, name):
    return next(ix for ix in model.__table__.indexes if ix.name == name)


class TestUniqueIndexes:
    def test_one_confirmed_appointment_per_instant(self):
        index = _index(Appointment, "uq_appointments_owner_start_confirmed")
        assert index.unique
        assert [c.name for c in index.columns] == ["owner_id", "start_at"]
        assert "confirmed" in str(index.dialect_options["postgresql"]["where"])

    def test_external_event_id_is_unique_per_owner(self):
        for model, name in (
            (Appointment, "uq_appointments_owner_external_event"),
            (Block, "uq_blocks_owner_external_event"),
        ):
            index = _index(model, name)
            assert index.unique
            assert [c.name for c in index.columns] == ["owner_id", "external_event_id"]
            assert "IS NOT NULL" in str(index.dialect_options["postgresql"]["where"])
