"""
Propose a target field for every column of an uploaded file.

Two strategies share one entry point:

- Heuristic: normalized name comparison against field keys, labels and a
  synonym list, with a sample-value pattern check for columns that still
  have no match. Always available.
- Assisted: a single prompt to a text generator listing the field catalog and
  a few sample rows. Used when a generator is configured; any failure falls
  back to the heuristic result so proposing mappings never raises.
"""
import json
import math
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from talent_import.api.schemas.imports import SKIP_TARGET, ColumnMapping, EntityKind
from talent_import.domain.imports.field_catalog import FieldDefinition, field_keys, fields_for
from talent_import.domain.imports.llm_client import TextGenerator

logger = logging.getLogger(__name__)

KEY_MATCH_SCORE = 1.0
LABEL_MATCH_SCORE = 0.95
ALIAS_MATCH_SCORE = 0.9
KEY_SUBSTRING_SCORE = 0.8
LABEL_SUBSTRING_SCORE = 0.75
DATA_PATTERN_SCORE = 0.7
MIN_CONFIDENCE = 0.5

PROMPT_SAMPLE_ROWS = 5
PATTERN_SAMPLE_ROWS = 5
PATTERN_MATCH_RATIO = 0.6
# Aliases this short only count as exact matches ("id", "cv", "jd" ...)
MIN_PARTIAL_ALIAS_LENGTH = 4

# Synonyms per target field, pre-normalized (lowercase, no spaces/underscores/hyphens)
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    # Candidate
    "applicantId": ("applicantid", "candidateid", "refid", "referenceid", "externalid", "id"),
    "fullName": ("fullname", "applicantfullname", "candidatename", "candidatefullname", "applicantname", "name"),
    "firstName": ("first", "fname", "givenname", "namefirst"),
    "lastName": ("last", "lname", "surname", "familyname", "namelast"),
    "email": ("emailaddress", "emailid", "mail", "emailaddr"),
    "phone": ("mobile", "cell", "telephone", "contactnumber", "mobilenumber", "cellphone", "phoneno", "tel"),
    "title": ("position", "designation", "role", "jobrole", "currenttitle", "currentrole"),
    "currentEmployer": ("company", "employer", "organization", "org", "currentcompany", "companyname", "firm"),
    "location": ("city", "address", "place", "area", "currentlocation", "loc"),
    "state": ("province", "region"),
    "visaStatus": ("visa", "workauthorization", "workauth", "immigrationstatus", "workstatus", "authorization"),
    "linkedinUrl": ("linkedin", "linkedinlink", "linkedinprofile", "linkedinprofileurl", "liurl", "liprofile"),
    "rate": ("salary", "hourlyrate", "compensation", "expectedrate", "currentrate", "ctc"),
    "availability": ("available", "startdate", "noticeperiod", "availablefrom", "joiningdate", "notice"),
    "dateOfBirth": ("dob", "birthdate", "birthday", "dateofbirth", "birth"),
    "resumeAvailable": ("resumeavailable", "resume", "hasresume", "cvavailable", "cv"),
    "skills": ("skillset", "technicalskills", "technologies", "techstack", "competencies", "expertise",
               "primaryskills", "technology"),
    "tags": ("labels", "categories", "keywords"),
    "source": ("leadsource", "referralsource", "channel", "origin", "candidatesource"),
    "status": ("applicantstatus", "candidatestatus", "currentstatus"),
    # Job
    "clientName": ("client", "customer", "account", "clientcompany", "vendorclient"),
    "description": ("jobdescription", "jd", "details", "summary", "overview", "desc"),
    "requirements": ("qualifications", "prereqs", "prerequisites", "requiredqualifications", "mandatoryskills"),
    "positionsCount": ("openings", "headcount", "numberofpositions", "vacancies", "positions", "noofpositions"),
    "billRate": ("billingrate", "clientrate", "billrate"),
    "payRate": ("pay", "payrate", "candidaterate"),
    "skillsRequired": ("requiredskills", "techstack", "technologies", "mandatoryskills", "primaryskills"),
    "jobType": ("employmenttype", "contracttype", "worktype", "type", "engagementtype"),
    "priority": ("urgency", "importance"),
    # Client
    "name": ("companyname", "clientname", "organization", "company", "firm", "orgname"),
    "industry": ("sector", "vertical", "domain", "businesstype", "industrysector"),
    "website": ("url", "web", "site", "homepage", "webpage", "companyurl", "websiteurl"),
    "address": ("street", "streetaddress", "addr", "officeaddress"),
    "country": ("nation",),
    "notes": ("comments", "remarks", "additionalinfo", "info", "memo"),
}

# Audit columns exported by source systems; never worth importing
AUTO_SKIP_COLUMNS = frozenset({
    "createdby", "createdon", "createddate", "modifiedby", "modifiedon", "modifieddate",
    "updatedby", "updatedon", "updateddate", "lastupdated",
})

# Sample-value detectors for columns whose header gave no usable signal
DATA_PATTERNS: Tuple[Tuple[str, "re.Pattern"], ...] = (
    ("email", re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")),
    ("linkedinUrl", re.compile(r"linkedin\.com", re.IGNORECASE)),
    ("website", re.compile(r"^https?://|\.(com|org|net|io|co)\b", re.IGNORECASE)),
    ("phone", re.compile(r"^[\d\s()+\-.]{7,20}$")),
)

_NORMALIZE_PATTERN = re.compile(r"[\s_\-]+")


def normalize_column(value: str) -> str:
    """Lower-case and strip whitespace, underscores and hyphens."""
    return _NORMALIZE_PATTERN.sub("", str(value).lower())


def _matches_alias(normalized: str, field_key: str) -> bool:
    for alias in FIELD_ALIASES.get(field_key, ()):
        if normalized == alias:
            return True
        if len(alias) >= MIN_PARTIAL_ALIAS_LENGTH and alias in normalized:
            return True
        if len(normalized) >= MIN_PARTIAL_ALIAS_LENGTH and normalized in alias:
            return True
    return False


def score_column(column: str, field: FieldDefinition) -> float:
    """Similarity between a source column name and a catalog field, exact matches first."""
    normalized = normalize_column(column)
    if not normalized:
        return 0.0

    key = normalize_column(field.key)
    label = normalize_column(field.label)

    if normalized == key:
        return KEY_MATCH_SCORE
    if normalized == label:
        return LABEL_MATCH_SCORE
    if _matches_alias(normalized, field.key):
        return ALIAS_MATCH_SCORE
    if normalized in key or key in normalized:
        return KEY_SUBSTRING_SCORE
    if normalized in label or label in normalized:
        return LABEL_SUBSTRING_SCORE
    return 0.0


def _sample_values(sample_rows: Sequence[Dict[str, Any]], column: str, limit: int) -> List[str]:
    values = []
    for row in list(sample_rows or [])[:limit]:
        value = row.get(column) if isinstance(row, dict) else None
        if value is None:
            continue
        text = str(value).strip()
        if text:
            values.append(text)
    return values


def _match_data_pattern(samples: List[str], available: Iterable[str]) -> Optional[str]:
    available = set(available)
    threshold = max(1, math.ceil(len(samples) * PATTERN_MATCH_RATIO))
    for field_key, pattern in DATA_PATTERNS:
        if field_key not in available:
            continue
        hits = sum(1 for sample in samples if pattern.search(sample))
        if hits >= threshold:
            return field_key
    return None


def heuristic_mappings(
    fields: Sequence[FieldDefinition],
    columns: Sequence[str],
    sample_rows: Optional[Sequence[Dict[str, Any]]] = None,
) -> List[ColumnMapping]:
    """
    Score every column against every field and keep the best match.

    A field assigned to one column is not offered to later columns, so the
    first (left-most) column claiming a field keeps it.
    """
    catalog_keys = [field.key for field in fields]
    used_fields: set = set()
    mappings: List[ColumnMapping] = []

    for column in columns:
        normalized = normalize_column(column)
        if normalized in AUTO_SKIP_COLUMNS:
            mappings.append(ColumnMapping(source_column=column, target_field=SKIP_TARGET, confidence=0.0))
            continue

        best_field = SKIP_TARGET
        best_score = 0.0
        for field in fields:
            if field.key in used_fields:
                continue
            score = score_column(column, field)
            if score > best_score:
                best_score = score
                best_field = field.key

        if best_score < MIN_CONFIDENCE and sample_rows:
            samples = _sample_values(sample_rows, column, PATTERN_SAMPLE_ROWS)
            if samples:
                pattern_field = _match_data_pattern(
                    samples, (key for key in catalog_keys if key not in used_fields)
                )
                if pattern_field:
                    best_field = pattern_field
                    best_score = DATA_PATTERN_SCORE

        if best_score >= MIN_CONFIDENCE:
            used_fields.add(best_field)
            mappings.append(ColumnMapping(source_column=column, target_field=best_field, confidence=best_score))
        else:
            mappings.append(ColumnMapping(source_column=column, target_field=SKIP_TARGET, confidence=0.0))

    return mappings


def build_mapping_prompt(
    fields: Sequence[FieldDefinition],
    columns: Sequence[str],
    sample_rows: Sequence[Dict[str, Any]],
) -> str:
    field_lines = []
    for field in fields:
        line = f'- "{field.key}" (label: "{field.label}", type: {field.value_type}'
        if field.required:
            line += ", required"
        if field.enum_values:
            line += f", values: [{', '.join(field.enum_values)}]"
        line += ")"
        field_lines.append(line)

    sample_lines = [
        f"Row {idx}: {json.dumps(row, default=str)}"
        for idx, row in enumerate(list(sample_rows or [])[:PROMPT_SAMPLE_ROWS], start=1)
    ]

    return (
        "You are a data mapping assistant. Map source columns from an uploaded file "
        "to the target entity fields.\n\n"
        "Target fields:\n"
        + "\n".join(field_lines)
        + f"\n\nSource columns: {json.dumps(list(columns))}\n\n"
        "Sample data:\n"
        + ("\n".join(sample_lines) or "(no sample rows)")
        + "\n\nFor each source column, determine the best matching target field. "
        f'Use "{SKIP_TARGET}" if no field matches well.\n\n'
        "Respond with ONLY a JSON array of objects, each with:\n"
        '- "sourceColumn": the original column name\n'
        f'- "targetField": the matching field key or "{SKIP_TARGET}"\n'
        '- "confidence": a number between 0 and 1\n\n'
        "JSON response:"
    )


def extract_json_array(text: str) -> List[Any]:
    """Return the first JSON array embedded in free-form model output."""
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            parsed, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("[", start + 1)
            continue
        if isinstance(parsed, list):
            return parsed
        start = text.find("[", start + 1)
    raise ValueError("No JSON array found in AI response")


def _parse_assisted_response(
    text: str,
    fields: Sequence[FieldDefinition],
    columns: Sequence[str],
    fallback: Sequence[ColumnMapping],
) -> List[ColumnMapping]:
    valid_targets = {field.key for field in fields} | {SKIP_TARGET}
    wanted = set(columns)
    proposed: Dict[str, ColumnMapping] = {}

    for item in extract_json_array(text):
        if not isinstance(item, dict):
            continue
        source = item.get("sourceColumn", item.get("source_column"))
        if source not in wanted or source in proposed:
            continue
        target = item.get("targetField", item.get("target_field"))
        if target not in valid_targets:
            target = SKIP_TARGET
        proposed[source] = ColumnMapping(
            source_column=source,
            target_field=target,
            confidence=item.get("confidence", 0),
        )

    missing = [column for column in columns if column not in proposed]
    if missing:
        logger.info("AI mapping omitted %d column(s); using heuristic result for: %s", len(missing), missing)

    by_column = {mapping.source_column: mapping for mapping in fallback}
    return [proposed.get(column) or by_column[column] for column in columns]


class MappingEngine:
    """Column → field proposals for one entity kind at a time."""

    def __init__(self, text_generator: Optional[TextGenerator] = None):
        self.text_generator = text_generator

    @property
    def assisted(self) -> bool:
        return self.text_generator is not None

    def propose_mappings(
        self,
        entity_kind: Union[str, EntityKind],
        columns: Sequence[str],
        sample_rows: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> List[ColumnMapping]:
        """Return one mapping per column, in column order."""
        fields = fields_for(entity_kind)
        columns = list(columns)
        sample_rows = list(sample_rows or [])

        heuristic = heuristic_mappings(fields, columns, sample_rows)
        if not self.assisted or not columns:
            return heuristic

        try:
            prompt = build_mapping_prompt(fields, columns, sample_rows)
            response_text = self.text_generator.generate(prompt)
            mappings = _parse_assisted_response(response_text, fields, columns, heuristic)
        except Exception as e:
            logger.warning(f"AI mapping failed, falling back to heuristic: {e}")
            return heuristic

        logger.info("AI mapping proposed targets for %d column(s)", len(mappings))
        return mappings


def freeze_mappings(
    entity_kind: Union[str, EntityKind],
    mappings: Sequence[Union[ColumnMapping, Dict[str, Any]]],
) -> List[ColumnMapping]:
    """
    Validate reviewed mappings before an import runs.

    Raises:
        ValueError: On duplicate source columns or targets outside the catalog
    """
    valid_targets = set(field_keys(entity_kind)) | {SKIP_TARGET}
    frozen: List[ColumnMapping] = []
    seen: set = set()
    problems: List[str] = []

    for mapping in mappings:
        if not isinstance(mapping, ColumnMapping):
            mapping = ColumnMapping.model_validate(mapping)
        if mapping.source_column in seen:
            problems.append(f"duplicate source column '{mapping.source_column}'")
        seen.add(mapping.source_column)
        if mapping.target_field not in valid_targets:
            problems.append(f"unknown target field '{mapping.target_field}' for column '{mapping.source_column}'")
        frozen.append(mapping.model_copy())

    if problems:
        raise ValueError("Invalid column mappings: " + "; ".join(problems))
    return frozen
