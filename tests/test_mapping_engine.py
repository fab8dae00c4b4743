import json
from unittest.mock import MagicMock

import pytest

from talent_import.api.schemas.imports import SKIP_TARGET, ColumnMapping, EntityKind
from talent_import.domain.imports.field_catalog import fields_for
from talent_import.domain.imports.mapping_engine import (
    ALIAS_MATCH_SCORE,
    DATA_PATTERN_SCORE,
    MappingEngine,
    extract_json_array,
    freeze_mappings,
    heuristic_mappings,
    score_column,
)


def _by_column(mappings):
    return {mapping.source_column: mapping for mapping in mappings}


def _llm_returning(payload):
    generator = MagicMock()
    generator.generate.return_value = payload if isinstance(payload, str) else json.dumps(payload)
    return generator


def test_exact_key_match_has_full_confidence():
    mappings = MappingEngine().propose_mappings(EntityKind.CANDIDATE, ["firstName"])

    assert mappings == [ColumnMapping(source_column="firstName", target_field="firstName", confidence=1.0)]


def test_unrecognized_column_is_skipped_with_zero_confidence():
    mapping = MappingEngine().propose_mappings("candidate", ["xyz123"])[0]

    assert mapping.target_field == SKIP_TARGET
    assert mapping.confidence == 0.0


def test_one_mapping_per_column_in_column_order():
    columns = ["Email Address", "xyz123", "Last Name", "First Name"]

    mappings = MappingEngine().propose_mappings(EntityKind.CANDIDATE, columns)

    assert [m.source_column for m in mappings] == columns
    assert [m.target_field for m in mappings] == ["email", SKIP_TARGET, "lastName", "firstName"]


def test_label_and_alias_matches():
    by_column = _by_column(MappingEngine().propose_mappings(
        EntityKind.CANDIDATE, ["Candidate Name", "Mobile Number", "Work Authorization", "Date of Birth"]
    ))

    assert by_column["Candidate Name"].target_field == "fullName"
    assert by_column["Candidate Name"].confidence == ALIAS_MATCH_SCORE
    assert by_column["Mobile Number"].target_field == "phone"
    assert by_column["Work Authorization"].target_field == "visaStatus"
    assert by_column["Date of Birth"].target_field == "dateOfBirth"
    assert by_column["Date of Birth"].confidence == 1.0


def test_short_aliases_do_not_match_inside_longer_words():
    field = next(f for f in fields_for(EntityKind.CANDIDATE) if f.key == "applicantId")

    assert score_column("ID", field) == ALIAS_MATCH_SCORE
    assert score_column("Video Link", field) == 0.0


def test_audit_columns_are_always_skipped():
    by_column = _by_column(MappingEngine().propose_mappings(
        EntityKind.CANDIDATE, ["Created By", "Modified On", "Email"]
    ))

    assert by_column["Created By"].target_field == SKIP_TARGET
    assert by_column["Modified On"].target_field == SKIP_TARGET
    assert by_column["Email"].target_field == "email"


def test_field_is_claimed_by_the_first_matching_column():
    mappings = heuristic_mappings(fields_for(EntityKind.CANDIDATE), ["Email", "E-mail"])

    assert mappings[0].target_field == "email"
    assert mappings[1].target_field != "email"


def test_sample_values_identify_unnamed_columns():
    sample_rows = [
        {"Column X": "ada@example.com", "Column Y": "https://www.linkedin.com/in/ada"},
        {"Column X": "alan@example.com", "Column Y": "linkedin.com/in/alan"},
        {"Column X": "grace@example.com", "Column Y": ""},
    ]

    by_column = _by_column(MappingEngine().propose_mappings(
        EntityKind.CANDIDATE, ["Column X", "Column Y"], sample_rows
    ))

    assert by_column["Column X"].target_field == "email"
    assert by_column["Column X"].confidence == DATA_PATTERN_SCORE
    assert by_column["Column Y"].target_field == "linkedinUrl"


def test_job_client_column_maps_to_virtual_client_name():
    by_column = _by_column(MappingEngine().propose_mappings(EntityKind.JOB, ["Job Title", "Client", "Openings"]))

    assert by_column["Job Title"].target_field == "title"
    assert by_column["Client"].target_field == "clientName"
    assert by_column["Openings"].target_field == "positionsCount"


def test_assisted_mapping_uses_model_answer():
    generator = _llm_returning([
        {"sourceColumn": "Applicant", "targetField": "fullName", "confidence": 0.93},
        {"sourceColumn": "Where", "targetField": "location", "confidence": 0.81},
    ])

    mappings = MappingEngine(generator).propose_mappings(
        EntityKind.CANDIDATE, ["Applicant", "Where"], [{"Applicant": "Ada Lovelace", "Where": "London"}]
    )

    assert [(m.target_field, m.confidence) for m in mappings] == [("fullName", 0.93), ("location", 0.81)]
    prompt = generator.generate.call_args[0][0]
    assert '"firstName"' in prompt
    assert "Ada Lovelace" in prompt


def test_assisted_answer_wrapped_in_prose_is_accepted():
    generator = _llm_returning(
        'Here is the mapping:\n```json\n[{"sourceColumn": "Email", "targetField": "email", "confidence": 0.99}]\n```'
    )

    mapping = MappingEngine(generator).propose_mappings(EntityKind.CANDIDATE, ["Email"])[0]

    assert mapping.target_field == "email"
    assert mapping.confidence == 0.99


def test_assisted_unknown_target_becomes_skip_and_confidence_is_clamped():
    generator = _llm_returning([
        {"sourceColumn": "Email", "targetField": "emailAddressPrimary", "confidence": 0.9},
        {"sourceColumn": "Phone", "targetField": "phone", "confidence": 7},
    ])

    by_column = _by_column(MappingEngine(generator).propose_mappings(EntityKind.CANDIDATE, ["Email", "Phone"]))

    assert by_column["Email"].target_field == SKIP_TARGET
    assert by_column["Phone"].confidence == 1.0


def test_columns_missing_from_assisted_answer_use_heuristic():
    generator = _llm_returning([{"sourceColumn": "Email", "targetField": "email", "confidence": 0.9}])

    mappings = MappingEngine(generator).propose_mappings(EntityKind.CANDIDATE, ["Email", "Last Name"])

    assert mappings[1].target_field == "lastName"


@pytest.mark.parametrize(
    "failure",
    [
        TimeoutError("model timed out"),
        RuntimeError("rate limited"),
    ],
)
def test_assisted_failure_falls_back_to_heuristic(failure):
    generator = MagicMock()
    generator.generate.side_effect = failure
    columns = ["First Name", "Last Name", "xyz123"]

    assisted = MappingEngine(generator).propose_mappings(EntityKind.CANDIDATE, columns)

    assert assisted == MappingEngine().propose_mappings(EntityKind.CANDIDATE, columns)


def test_non_json_answer_falls_back_to_heuristic():
    generator = _llm_returning("I could not determine the mapping, sorry.")

    mappings = MappingEngine(generator).propose_mappings(EntityKind.CANDIDATE, ["firstName"])

    assert mappings[0].target_field == "firstName"
    assert mappings[0].confidence == 1.0


def test_generator_is_not_called_without_columns():
    generator = _llm_returning([])

    assert MappingEngine(generator).propose_mappings(EntityKind.CLIENT, []) == []
    generator.generate.assert_not_called()


def test_extract_json_array_skips_bracketed_prose():
    assert extract_json_array('See [note] below: [{"a": 1}]') == [{"a": 1}]
    with pytest.raises(ValueError):
        extract_json_array("no array here")


def test_freeze_mappings_accepts_dicts_and_skips():
    frozen = freeze_mappings("client", [
        {"source_column": "Company", "target_field": "name", "confidence": 0.9},
        {"source_column": "Internal Notes", "target_field": "SKIP"},
    ])

    assert [m.target_field for m in frozen] == ["name", SKIP_TARGET]


def test_freeze_mappings_rejects_unknown_targets_and_duplicate_columns():
    with pytest.raises(ValueError, match="unknown target field"):
        freeze_mappings(EntityKind.CLIENT, [ColumnMapping(source_column="Company", target_field="companyName")])

    with pytest.raises(ValueError, match="duplicate source column"):
        freeze_mappings(EntityKind.CLIENT, [
            ColumnMapping(source_column="Company", target_field="name"),
            ColumnMapping(source_column="Company", target_field="SKIP"),
        ])
