"""CalAIM member table schema.

The member table has accumulated several spellings of the same columns
(``client_ID2`` / ``Client_ID2`` / ``clientId2``, ``Senior_First`` /
``First_Name`` ...). This schema resolves them into the shape the case
dashboards consume.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ..models import CanonicalRecord, RawRecord
from .normalizer import Normalizer, join_name
from .schema import CompositeRule, FieldRule, RecordSchema

MEMBERS_TABLE = "CalAIM_tbl_Members"
MCO_FIELD = "CalAIM_MCO"
UPDATED_FIELD = "Date_Modified"

# Health plans enumerated for member partitioning
MCO_PARTITIONS: tuple[str, ...] = ("Kaiser", "Health Net", "Molina", "Blue Cross", "Anthem")

DEFAULT_COUNTY = "Los Angeles"
UNKNOWN = "Unknown"

MEMBER_ID_ALIASES: tuple[str, ...] = ("client_ID2", "Client_ID2", "clientId2", "id", "ID")

MEMBER_SELECT_FIELDS: tuple[str, ...] = (
    "Client_ID2",
    "Senior_First",
    "Senior_Last",
    "Member_County",
    "CalAIM_MCO",
    "CalAIM_Status",
    "Kaiser_User_Assignment",
    "Social_Worker_Assigned",
    "Hold_For_Social_Worker",
    "SW_ID",
    "RCFE_Name",
    "RCFE_Address",
    "Pathway",
    "Date_Modified",
)

_TRAILING_ID = re.compile(r"\s+\d+$")


def normalize_social_worker_name(name: Any) -> str:
    """Standardize a social worker name so variants compare equal.

    Title-cases each word and strips a trailing numeric id, e.g.
    ``"BUCKHALTER, BILLY"`` and ``"Buckhalter, Billy 76"`` both become
    ``"Buckhalter, Billy"``.
    """
    if name is None:
        return ""
    text = str(name).strip()
    if not text:
        return ""
    words = text.lower().split()
    titled = " ".join(word[:1].upper() + word[1:] for word in words)
    return _TRAILING_ID.sub("", titled).strip()


def _member_name(values: Mapping[str, Any], raw: Mapping[str, Any]) -> str:
    return join_name(values.get("memberFirstName"), values.get("memberLastName"))


def _text(value: Any) -> str:
    return str(value)


MEMBER_SCHEMA = RecordSchema(
    name="calaim_member",
    id_aliases=MEMBER_ID_ALIASES,
    fields=(
        FieldRule("id", MEMBER_ID_ALIASES, transform=_text),
        FieldRule("Client_ID2", ("client_ID2", "Client_ID2", "clientId2"), default="", transform=_text),
        FieldRule("memberFirstName", ("Senior_First", "senior_first", "First_Name", "memberFirstName"), default=""),
        FieldRule("memberLastName", ("Senior_Last", "senior_last", "Last_Name", "memberLastName"), default=""),
        FieldRule("memberCounty", ("Member_County", "MemberCounty", "County", "memberCounty"), default=DEFAULT_COUNTY),
        FieldRule("CalAIM_MCO", ("CalAIM_MCO", "MCO", "Health_Plan"), default=UNKNOWN),
        FieldRule("CalAIM_Status", ("CalAIM_Status", "Status"), default=UNKNOWN),
        FieldRule(
            "Social_Worker_Assigned",
            ("Social_Worker_Assigned", "SW_Assigned"),
            default="",
            transform=normalize_social_worker_name,
        ),
        FieldRule("Staff_Assigned", ("Kaiser_User_Assignment", "Staff_Assigned"), default=""),
        FieldRule("Hold_For_Social_Worker", ("Hold_For_Social_Worker",), default=""),
        FieldRule("RCFE_Name", ("RCFE_Name",), default=""),
        FieldRule("RCFE_Address", ("RCFE_Address",), default=""),
        FieldRule("pathway", ("Pathway", "pathway"), default=UNKNOWN),
        FieldRule("last_updated", ("last_updated", "Date_Modified", "LastUpdated")),
    ),
    composites=(
        CompositeRule("memberName", _member_name, aliases=("memberName", "Member_Name"), default=""),
    ),
)

_member_normalizer = Normalizer(MEMBER_SCHEMA)


def normalize_member(raw: RawRecord) -> CanonicalRecord:
    """Normalize one raw member row."""
    return _member_normalizer.normalize(raw)
