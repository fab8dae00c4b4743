import pytest
from rich.console import Console

from talent_import.api.schemas.imports import EntityKind
from talent_import.console import ImportConsole, build_parser
from talent_import.domain.imports.orchestrator import ImportService

JOBS_CSV = b"Job Title,Client,Job Type\nEngineer,Acme Corp,Contract\nAnalyst,Unknown Co,Full time\n"


@pytest.fixture
def import_console(store, uploads):
    return ImportConsole(ImportService(store, uploads=uploads), Console(record=True, width=120))


def test_parser_requires_entity_and_tenant_for_run():
    parser = build_parser()

    args = parser.parse_args(["run", "jobs.csv", "--entity", "job", "--tenant", "t1", "--user", "u1", "-y"])
    assert (args.command, args.entity, args.tenant, args.user, args.yes) == ("run", "job", "t1", "u1", True)

    with pytest.raises(SystemExit):
        parser.parse_args(["run", "jobs.csv", "--entity", "job"])
    with pytest.raises(SystemExit):
        parser.parse_args(["analyze", "jobs.csv", "--entity", "invoice"])


def test_analyze_prints_mappings_and_keeps_nothing(import_console, uploads, tmp_path):
    path = tmp_path / "jobs.csv"
    path.write_bytes(JOBS_CSV)

    parsed, mappings = import_console.analyze(path, EntityKind.JOB)

    output = import_console.console.export_text()
    assert "Proposed mappings" in output
    assert "clientName" in output
    assert [m.target_field for m in mappings] == ["title", "clientName", "jobType"]
    with pytest.raises(FileNotFoundError):
        uploads.load(parsed.file_id)


def test_run_reports_created_and_failed_rows(import_console, tmp_path, context, acme_client):
    path = tmp_path / "jobs.csv"
    path.write_bytes(JOBS_CSV)

    result = import_console.run(path, EntityKind.JOB, context, assume_yes=True)

    assert (result.created, result.skipped) == (1, 1)
    output = import_console.console.export_text()
    assert 'Client not found: "Unknown Co"' in output
