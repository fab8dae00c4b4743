from sqlalchemy import select

from talent_import.api.schemas.imports import ColumnMapping, EntityKind
from talent_import.db.models import Candidate, CustomField, Job
from talent_import.domain.imports.batch_executor import BatchExecutor
from talent_import.domain.imports.errors import EntityCreationError
from talent_import.domain.imports.field_catalog import fields_for

CANDIDATE_MAPPINGS = [
    ColumnMapping(source_column="First Name", target_field="firstName", confidence=0.95),
    ColumnMapping(source_column="Last Name", target_field="lastName", confidence=0.95),
    ColumnMapping(source_column="Email", target_field="email", confidence=1.0),
]


def _candidate_rows(count):
    return [
        {"First Name": f"First{i}", "Last Name": f"Last{i}", "Email": f"person{i}@example.com"}
        for i in range(1, count + 1)
    ]


class RecordingStore:
    """In-memory EntityStore; payloads whose email is in ``reject`` fail on creation."""

    def __init__(self, reject=(), custom_fields=None, custom_fields_error=None):
        self.reject = set(reject)
        self.created = []
        self.batch_calls = 0
        self._custom_fields = custom_fields or []
        self._custom_fields_error = custom_fields_error

    def create_many(self, entity_kind, payloads):
        self.batch_calls += 1
        if any(payload.get("email") in self.reject for payload in payloads):
            raise EntityCreationError("Unique constraint failed: email", kind=EntityCreationError.UNIQUE_VIOLATION)
        self.created.extend(payloads)
        return len(payloads)

    def create_one(self, entity_kind, payload):
        if payload.get("email") in self.reject:
            raise EntityCreationError("Unique constraint failed: email", kind=EntityCreationError.UNIQUE_VIOLATION)
        self.created.append(payload)
        return str(len(self.created))

    def find_client_id(self, tenant_id, name):
        return None

    def custom_fields(self, tenant_id, entity_kind):
        if self._custom_fields_error:
            raise self._custom_fields_error
        return self._custom_fields


def test_duplicate_in_batch_falls_back_to_per_row_creation(store, session_factory, context):
    rows = _candidate_rows(100)
    rows[36]["Email"] = rows[0]["Email"]  # row 37 repeats row 1

    result = BatchExecutor(store, batch_size=100).execute(
        rows, CANDIDATE_MAPPINGS, fields_for(EntityKind.CANDIDATE), EntityKind.CANDIDATE, context
    )

    assert result.created == 99
    assert result.skipped == 1
    assert [error.row for error in result.errors] == [37]
    assert "Unique constraint failed" in result.errors[0].message

    with session_factory() as session:
        candidates = session.execute(select(Candidate)).scalars().all()
    assert len(candidates) == 99
    assert {candidate.tenant_id for candidate in candidates} == {"tenant-1"}
    assert {candidate.created_by_id for candidate in candidates} == {"user-1"}


def test_clean_batches_use_one_transaction_each(context):
    store = RecordingStore()

    outcomes = list(BatchExecutor(store, batch_size=10).iter_batches(
        _candidate_rows(25), CANDIDATE_MAPPINGS, fields_for(EntityKind.CANDIDATE), EntityKind.CANDIDATE, context
    ))

    assert [(o.batch_number, o.first_row, o.row_count) for o in outcomes] == [(1, 1, 10), (2, 11, 10), (3, 21, 5)]
    assert not any(o.used_fallback for o in outcomes)
    assert store.batch_calls == 3
    assert len(store.created) == 25


def test_row_numbers_are_absolute_across_batches(context):
    rows = _candidate_rows(30)
    rows[14]["Last Name"] = ""
    store = RecordingStore(reject={"person23@example.com"})

    result = BatchExecutor(store, batch_size=10).execute(
        rows, CANDIDATE_MAPPINGS, fields_for(EntityKind.CANDIDATE), EntityKind.CANDIDATE, context
    )

    assert result.created == 28
    assert result.skipped == 2
    assert [(e.row, e.message) for e in result.errors] == [
        (15, "Missing required fields: Last Name"),
        (23, "Unique constraint failed: email"),
    ]


def test_accounting_is_monotonic_and_complete(context):
    rows = _candidate_rows(45)
    rows[3]["First Name"] = ""
    store = RecordingStore(reject={"person40@example.com"})

    created = skipped = 0
    for outcome in BatchExecutor(store, batch_size=20).iter_batches(
        rows, CANDIDATE_MAPPINGS, fields_for(EntityKind.CANDIDATE), EntityKind.CANDIDATE, context
    ):
        assert outcome.result.created + outcome.result.skipped == outcome.row_count
        assert outcome.result.skipped == len(outcome.result.errors)
        created += outcome.result.created
        skipped += outcome.result.skipped

    assert created + skipped == len(rows)
    assert (created, skipped) == (43, 2)


def test_stopping_iteration_stops_the_import(context):
    store = RecordingStore()
    batches = BatchExecutor(store, batch_size=10).iter_batches(
        _candidate_rows(50), CANDIDATE_MAPPINGS, fields_for(EntityKind.CANDIDATE), EntityKind.CANDIDATE, context
    )

    first = next(batches)
    batches.close()

    assert first.result.created == 10
    assert len(store.created) == 10


def test_empty_file_creates_nothing(context):
    store = RecordingStore()

    result = BatchExecutor(store).execute([], CANDIDATE_MAPPINGS, fields_for("candidate"), "candidate", context)

    assert (result.created, result.skipped, result.errors) == (0, 0, [])
    assert store.batch_calls == 0


def test_custom_field_lookup_failure_does_not_block_import(context):
    store = RecordingStore(custom_fields_error=RuntimeError("custom_fields table missing"))

    result = BatchExecutor(store).execute(
        _candidate_rows(3), CANDIDATE_MAPPINGS, fields_for(EntityKind.CANDIDATE), EntityKind.CANDIDATE, context
    )

    assert result.created == 3


def test_jobs_resolve_clients_and_fill_custom_data(store, session_factory, context, acme_client):
    with session_factory() as session:
        session.add(CustomField(
            tenant_id=context.tenant_id, entity_type="job", field_key="hiring_manager", field_name="Hiring Manager",
        ))
        session.commit()

    rows = [
        {"Title": "Engineer", "Client": "acme corp", "Hiring Manager": "Grace", "Openings": "2"},
        {"Title": "Analyst", "Client": "Initech", "Hiring Manager": "Bill", "Openings": "1"},
    ]
    mappings = [
        ColumnMapping(source_column="Title", target_field="title", confidence=0.95),
        ColumnMapping(source_column="Client", target_field="clientName", confidence=0.9),
        ColumnMapping(source_column="Hiring Manager", target_field="SKIP"),
        ColumnMapping(source_column="Openings", target_field="positionsCount", confidence=0.9),
    ]

    result = BatchExecutor(store).execute(rows, mappings, fields_for(EntityKind.JOB), EntityKind.JOB, context)

    assert result.created == 1
    assert [(e.row, e.message) for e in result.errors] == [(2, 'Client not found: "Initech"')]

    with session_factory() as session:
        job = session.execute(select(Job)).scalar_one()
    assert job.client_id == acme_client
    assert job.positions_count == 2
    assert job.job_type == "FULLTIME"
    assert job.custom_data == {"hiring_manager": "Grace"}
