"""
Role-based feature control.

The oversight role (`roo`) supervises schools: it sees every roster read-only
and manages the schools themselves. A school account manages its own roster
but never sees other schools.
"""

from enum import Enum
from typing import Dict, FrozenSet, List

from schooladmin.exceptions import PermissionDeniedError, UnauthenticatedError
from schooladmin.session import ROLE_OVERSIGHT, ROLE_SCHOOL, SessionStore


class Feature(str, Enum):
    DASHBOARD = "dashboard"
    VIEW_STUDENTS = "view_students"
    VIEW_TEACHERS = "view_teachers"
    VIEW_CLASSES = "view_classes"
    VIEW_SCHOOLS = "view_schools"
    MANAGE_SCHOOLS = "manage_schools"
    SCHOOL_AGGREGATE = "school_aggregate"
    MANAGE_STUDENTS = "manage_students"
    MANAGE_TEACHERS = "manage_teachers"
    MANAGE_CLASSES = "manage_classes"
    IMPORT_ROSTER = "import_roster"
    DOWNLOAD_TEMPLATE = "download_template"


_READ_FEATURES = frozenset({
    Feature.DASHBOARD,
    Feature.VIEW_STUDENTS,
    Feature.VIEW_TEACHERS,
    Feature.VIEW_CLASSES,
})

ROLE_FEATURES: Dict[str, FrozenSet[Feature]] = {
    ROLE_OVERSIGHT: _READ_FEATURES | {
        Feature.VIEW_SCHOOLS,
        Feature.MANAGE_SCHOOLS,
        Feature.SCHOOL_AGGREGATE,
    },
    ROLE_SCHOOL: _READ_FEATURES | {
        Feature.MANAGE_STUDENTS,
        Feature.MANAGE_TEACHERS,
        Feature.MANAGE_CLASSES,
        Feature.IMPORT_ROSTER,
        Feature.DOWNLOAD_TEMPLATE,
    },
}

# Navigation order, each entry gated by its read feature
SECTIONS = (
    ("dashboard", Feature.DASHBOARD),
    ("schools", Feature.VIEW_SCHOOLS),
    ("students", Feature.VIEW_STUDENTS),
    ("teachers", Feature.VIEW_TEACHERS),
    ("classes", Feature.VIEW_CLASSES),
)


def can(session: SessionStore, feature: Feature) -> bool:
    """True if the current, unexpired session's role grants the feature"""
    if not session.is_authenticated or session.role is None:
        return False
    return feature in ROLE_FEATURES.get(session.role, frozenset())


def require(session: SessionStore, feature: Feature) -> None:
    """
    Raise unless the feature is available.

    Raises:
        UnauthenticatedError: nobody is signed in, or the token expired
        PermissionDeniedError: the role does not grant the feature
    """
    if not session.is_authenticated:
        raise UnauthenticatedError("Please login first")
    if not can(session, feature):
        raise PermissionDeniedError(feature.value, session.role)


def visible_sections(session: SessionStore) -> List[str]:
    return [name for name, feature in SECTIONS if can(session, feature)]
