"""
Importable fields per entity kind.

Keys are the payload keys the row transformer produces; labels are what a
reviewer sees and what the heuristic matcher compares headers against.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from talent_import.api.schemas.imports import EntityKind


STRING = "string"
NUMBER = "number"
ENUM = "enum"
ARRAY = "array"
DATE = "date"

VALUE_TYPES = (STRING, NUMBER, ENUM, ARRAY, DATE)

# Virtual keys that need entity-aware handling in the row transformer
FULL_NAME_FIELD = "fullName"
CLIENT_NAME_FIELD = "clientName"


@dataclass(frozen=True)
class FieldDefinition:
    key: str
    label: str
    value_type: str = STRING
    required: bool = False
    enum_values: Optional[Tuple[str, ...]] = None
    virtual: bool = False

    def __post_init__(self):
        if self.value_type not in VALUE_TYPES:
            raise ValueError(f"Unsupported value type '{self.value_type}' for field '{self.key}'")


CANDIDATE_FIELDS: Tuple[FieldDefinition, ...] = (
    FieldDefinition("applicantId", "Applicant ID"),
    FieldDefinition(FULL_NAME_FIELD, "Full Name", virtual=True),
    FieldDefinition("firstName", "First Name", required=True),
    FieldDefinition("lastName", "Last Name", required=True),
    FieldDefinition("email", "Email"),
    FieldDefinition("phone", "Phone"),
    FieldDefinition("title", "Job Title"),
    FieldDefinition("currentEmployer", "Current Employer"),
    FieldDefinition("location", "Location"),
    FieldDefinition("state", "State"),
    FieldDefinition("visaStatus", "Visa Status"),
    FieldDefinition("linkedinUrl", "LinkedIn URL"),
    FieldDefinition("rate", "Rate", NUMBER),
    FieldDefinition("availability", "Availability"),
    FieldDefinition("dateOfBirth", "Date of Birth", DATE),
    FieldDefinition("resumeAvailable", "Resume Available"),
    FieldDefinition("skills", "Skills", ARRAY),
    FieldDefinition("tags", "Tags", ARRAY),
    FieldDefinition(
        "source",
        "Source",
        ENUM,
        enum_values=("REFERRAL", "LINKEDIN", "JOBBOARD", "DIRECT", "OTHER"),
    ),
    FieldDefinition("status", "Status", ENUM, enum_values=("ACTIVE", "PASSIVE", "DND", "PLACED")),
)

JOB_FIELDS: Tuple[FieldDefinition, ...] = (
    FieldDefinition("title", "Job Title", required=True),
    FieldDefinition(CLIENT_NAME_FIELD, "Client Name", required=True, virtual=True),
    FieldDefinition("description", "Description"),
    FieldDefinition("requirements", "Requirements"),
    FieldDefinition("location", "Location"),
    FieldDefinition("positionsCount", "Positions", NUMBER),
    FieldDefinition("billRate", "Bill Rate", NUMBER),
    FieldDefinition("payRate", "Pay Rate", NUMBER),
    FieldDefinition("skillsRequired", "Required Skills", ARRAY),
    FieldDefinition("jobType", "Job Type", ENUM, enum_values=("FULLTIME", "CONTRACT", "C2H")),
    FieldDefinition("status", "Status", ENUM, enum_values=("OPEN", "CLOSED", "ON_HOLD", "FILLED")),
    FieldDefinition("priority", "Priority", ENUM, enum_values=("HOT", "NORMAL", "LOW")),
)

CLIENT_FIELDS: Tuple[FieldDefinition, ...] = (
    FieldDefinition("name", "Company Name", required=True),
    FieldDefinition("industry", "Industry"),
    FieldDefinition("website", "Website"),
    FieldDefinition("address", "Address"),
    FieldDefinition("city", "City"),
    FieldDefinition("state", "State"),
    FieldDefinition("country", "Country"),
    FieldDefinition("notes", "Notes"),
    FieldDefinition("status", "Status", ENUM, enum_values=("ACTIVE", "INACTIVE", "PROSPECT")),
)

_CATALOGS: Dict[EntityKind, Tuple[FieldDefinition, ...]] = {
    EntityKind.CANDIDATE: CANDIDATE_FIELDS,
    EntityKind.JOB: JOB_FIELDS,
    EntityKind.CLIENT: CLIENT_FIELDS,
}


def resolve_entity_kind(entity_kind: Union[str, EntityKind]) -> EntityKind:
    try:
        return EntityKind(entity_kind)
    except ValueError:
        raise ValueError(f"Unsupported entity type: {entity_kind}") from None


def fields_for(entity_kind: Union[str, EntityKind]) -> Tuple[FieldDefinition, ...]:
    """Return the ordered field catalog for an entity kind."""
    return _CATALOGS[resolve_entity_kind(entity_kind)]


def field_keys(entity_kind: Union[str, EntityKind]) -> Tuple[str, ...]:
    return tuple(field.key for field in fields_for(entity_kind))
