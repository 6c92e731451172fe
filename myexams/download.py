"""
Export-by-token boundary.

Calendar apps subscribe to a personal URL such as

    /ics/ee9abb52-56f9-46a2-88e4-d955fb89181e.ics

The web layer hands the path to export_for_path() and maps the errors:
- ValidationError -> 400 (path or token malformed)
- NotFoundError   -> 404 (nobody ever used this token)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from myexams.errors import ValidationError
from myexams.export_ics import serialize
from myexams.logging import get_logger
from myexams.repository import ExamRepository
from myexams.storage import SelectionStore, parse_token

logger = get_logger(__name__)

ICS_SUFFIX = ".ics"


def token_from_path(path: str) -> uuid.UUID:
    """
    Extract and validate the token from "/<token>.ics".
    """
    if not path or not path.endswith(ICS_SUFFIX):
        raise ValidationError(f"Invalid path: {path!r}")

    segment = path[path.rfind("/") + 1 : -len(ICS_SUFFIX)]
    return parse_token(segment)


def export_for_path(
    path: str,
    store: SelectionStore,
    repository: ExamRepository,
    now: Optional[datetime] = None,
) -> bytes:
    """
    Return the .ics document for the selection behind path.

    Read-only: an unknown token raises NotFoundError and is not created.
    """
    token = token_from_path(path)
    selection = store.get(token)

    exams = repository.records_for_ids(selection.selected_ids)
    logger.info("ics_served", token=str(token), events=len(exams))
    return serialize(exams, now=now, reference_year=repository.reference_year)


def content_disposition(token: uuid.UUID) -> str:
    return f'inline; filename="{token}{ICS_SUFFIX}"'


def user_link(base_url: str, token: uuid.UUID) -> str:
    """
    Personal link the user keeps to get back to their selection.
    """
    return f"{base_url.rstrip('/')}/?user={token}"


def ics_link(base_url: str, token: uuid.UUID) -> str:
    """
    Subscription URL for calendar apps.
    """
    return f"{base_url.rstrip('/')}/ics/{token}{ICS_SUFFIX}"
