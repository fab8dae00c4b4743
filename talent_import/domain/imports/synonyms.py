"""
Vocabulary tables for enum normalization.

Source systems describe the same category in many ways ("Indeed", "Dice",
"Job board"). Each table maps phrases found in a raw cell to one allowed enum
value. Rules are checked in order and the first hit wins, so more specific
phrases ("not looking") sit above broader ones ("looking").

New vocabulary is added with ``register_synonyms``; bump
``SYNONYM_TABLE_VERSION`` when the built-in tables change.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from talent_import.api.schemas.imports import EntityKind


SYNONYM_TABLE_VERSION = 3

_SEPARATORS = re.compile(r"[^a-z0-9]+")


def normalize_phrase(value: str) -> str:
    """Lower-case and collapse any punctuation/whitespace run into one space."""
    return _SEPARATORS.sub(" ", str(value).lower()).strip()


@dataclass
class SynonymRule:
    value: str
    phrases: Tuple[str, ...]
    _patterns: List["re.Pattern"] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        self.phrases = tuple(normalize_phrase(p) for p in self.phrases if normalize_phrase(p))
        self._patterns = [re.compile(rf"\b{re.escape(p)}\b") for p in self.phrases]

    def matches(self, text: str) -> bool:
        compact = text.replace(" ", "")
        for phrase, pattern in zip(self.phrases, self._patterns):
            if pattern.search(text) or compact == phrase.replace(" ", ""):
                return True
        return False


@dataclass
class SynonymTable:
    rules: List[SynonymRule]
    default: Optional[str] = None

    def lookup(self, raw_value: str) -> Optional[str]:
        text = normalize_phrase(raw_value)
        if not text:
            return None
        for rule in self.rules:
            if rule.matches(text):
                return rule.value
        return None


JOB_BOARDS = (
    "indeed", "dice", "monster", "careerbuilder", "career builder", "ziprecruiter",
    "glassdoor", "simplyhired", "naukri", "craigslist", "jobserve", "totaljobs",
    "seek", "wellfound", "angellist", "job board", "jobboard", "job portal",
)

_TABLES: Dict[Tuple[EntityKind, str], SynonymTable] = {
    (EntityKind.CANDIDATE, "source"): SynonymTable(
        rules=[
            SynonymRule("JOBBOARD", JOB_BOARDS),
            SynonymRule("LINKEDIN", ("linkedin", "linked in")),
            SynonymRule("REFERRAL", ("referral", "referred", "reference", "employee referral")),
            SynonymRule("DIRECT", ("direct", "website", "career site", "careers page", "walk in", "inbound")),
        ],
        default="OTHER",
    ),
    (EntityKind.CANDIDATE, "status"): SynonymTable(
        rules=[
            SynonymRule("DND", ("do not contact", "do not call", "dnc", "dnd", "blacklist", "blacklisted", "blocked")),
            SynonymRule("PLACED", ("hired", "joined", "placed", "onboarded")),
            SynonymRule("PASSIVE", ("not looking", "passive", "not available", "unavailable", "not interested")),
            SynonymRule("ACTIVE", ("new lead", "available", "active", "open to work", "looking", "immediate")),
        ],
    ),
    (EntityKind.JOB, "status"): SynonymTable(
        rules=[
            SynonymRule("ON_HOLD", ("on hold", "hold", "paused", "pending", "frozen")),
            SynonymRule("FILLED", ("filled", "placed", "hired")),
            SynonymRule("CLOSED", ("closed", "cancelled", "canceled", "inactive", "lost")),
            SynonymRule("OPEN", ("open", "active", "new", "hiring")),
        ],
    ),
    (EntityKind.JOB, "jobType"): SynonymTable(
        rules=[
            SynonymRule("C2H", ("c2h", "contract to hire", "cth", "temp to perm")),
            SynonymRule("FULLTIME", ("full time", "fte", "permanent", "perm", "direct hire")),
            SynonymRule("CONTRACT", ("contract", "contractor", "c2c", "corp to corp", "w2", "1099", "temp", "temporary", "freelance")),
        ],
    ),
    (EntityKind.JOB, "priority"): SynonymTable(
        rules=[
            SynonymRule("HOT", ("hot", "urgent", "high", "critical", "asap")),
            SynonymRule("LOW", ("low", "backburner")),
            SynonymRule("NORMAL", ("normal", "medium", "standard", "regular")),
        ],
    ),
    (EntityKind.CLIENT, "status"): SynonymTable(
        rules=[
            SynonymRule("INACTIVE", ("inactive", "former", "churned", "dormant", "closed")),
            SynonymRule("PROSPECT", ("prospect", "lead", "potential", "target", "pipeline")),
            SynonymRule("ACTIVE", ("active", "current", "customer", "signed", "existing")),
        ],
    ),
}


def get_synonym_table(entity_kind: Union[str, EntityKind], field_key: str) -> Optional[SynonymTable]:
    return _TABLES.get((EntityKind(entity_kind), field_key))


def register_synonyms(
    entity_kind: Union[str, EntityKind],
    field_key: str,
    value: str,
    *phrases: str,
    default: Optional[str] = None,
) -> SynonymTable:
    """
    Extend (or create) the table for a field with phrases that map to ``value``.

    Tables are process-wide and shared by every tenant and import, so register
    rules once at startup. Registered rules take precedence over the built-in
    ones and can override a generic phrase.
    """
    key = (EntityKind(entity_kind), field_key)
    table = _TABLES.setdefault(key, SynonymTable(rules=[]))
    table.rules.insert(0, SynonymRule(value, phrases))
    if default is not None:
        table.default = default
    return table
