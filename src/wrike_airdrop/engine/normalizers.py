"""
Record normalizers: raw Wrike API records to canonical snake_case records,
and canonical records to repository items.

All functions are pure; optional source fields are defaulted here so that
workers and repositories can rely on every key being present.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_TASK_STATUS = "Unknown"
DEFAULT_PROJECT_STATUS = "Unknown"
DEFAULT_TASK_IMPORTANCE = "Normal"
DEFAULT_CONTACT_TYPE = "Person"
EXTERNAL_SYNC_UNIT_ITEM_TYPE = "tasks"


def normalize_project(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a Wrike project folder."""
    project_data = raw.get("project") or {}
    return {
        "id": raw.get("id"),
        "title": raw.get("title") or "",
        "description": raw.get("description") or "",
        "created_date": raw.get("createdDate"),
        "updated_date": raw.get("updatedDate"),
        "status": project_data.get("status") or DEFAULT_PROJECT_STATUS,
        "owner_ids": raw.get("ownerIds") or project_data.get("ownerIds") or [],
        "permalink": raw.get("permalink"),
        "custom_fields": raw.get("customFields") or [],
        "child_ids": raw.get("childIds") or [],
        "parent_ids": raw.get("parentIds") or [],
        "scope": raw.get("scope"),
    }


def normalize_task(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a Wrike task."""
    attachment_count = raw.get("attachmentCount") or 0
    return {
        "id": raw.get("id"),
        "title": raw.get("title") or "",
        "description": raw.get("description") or "",
        "brief_description": raw.get("briefDescription") or "",
        "status": raw.get("status") or DEFAULT_TASK_STATUS,
        "importance": raw.get("importance") or DEFAULT_TASK_IMPORTANCE,
        "created_date": raw.get("createdDate"),
        "updated_date": raw.get("updatedDate"),
        "completed_date": raw.get("completedDate"),
        "due_date": (raw.get("dates") or {}).get("due") or raw.get("dueDate"),
        "parent_ids": raw.get("parentIds") or [],
        "super_parent_ids": raw.get("superParentIds") or [],
        "responsible_ids": raw.get("responsibleIds") or [],
        "author_ids": raw.get("authorIds") or [],
        "custom_status_id": raw.get("customStatusId"),
        "custom_fields": raw.get("customFields") or [],
        "permalink": raw.get("permalink"),
        "attachment_count": attachment_count,
        "has_attachments": attachment_count > 0,
        "scope": raw.get("scope"),
    }


def normalize_contact(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a Wrike contact."""
    first_name = raw.get("firstName") or ""
    last_name = raw.get("lastName") or ""
    profiles = raw.get("profiles") or []
    primary_profile = profiles[0] if profiles else {}
    return {
        "id": raw.get("id"),
        "first_name": first_name,
        "last_name": last_name,
        "full_name": f"{first_name} {last_name}".strip(),
        "type": raw.get("type") or DEFAULT_CONTACT_TYPE,
        "email": primary_profile.get("email") or "",
        "timezone": raw.get("timezone") or "",
        "locale": raw.get("locale") or "",
        "deleted": bool(raw.get("deleted", False)),
        "avatar_url": raw.get("avatarUrl") or "",
        "title": raw.get("title"),
        "company_name": raw.get("companyName"),
        "me": bool(raw.get("me", False)),
    }


def project_to_external_sync_unit(project: Dict[str, Any], item_count: int) -> Dict[str, Any]:
    """Present a normalized project as an external sync unit."""
    title = project.get("title") or ""
    return {
        "id": project["id"],
        "name": title,
        "description": project.get("description") or f"Wrike project: {title}",
        "item_count": item_count,
        "item_type": EXTERNAL_SYNC_UNIT_ITEM_TYPE,
    }


def task_to_item(task: Dict[str, Any]) -> Dict[str, Any]:
    """Repository item for a normalized task."""
    return {
        "id": task["id"],
        "created_date": task.get("created_date"),
        "modified_date": task.get("updated_date"),
        "data": task,
    }


def contact_to_item(contact: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Repository item for a normalized contact.

    Wrike contacts carry no timestamps, so both dates are the extraction time.
    """
    stamp = (now or datetime.now(timezone.utc)).isoformat()
    return {
        "id": contact["id"],
        "created_date": stamp,
        "modified_date": stamp,
        "data": contact,
    }


def normalize_all(records: List[Dict[str, Any]], normalizer) -> List[Dict[str, Any]]:
    """Normalize a batch, skipping records without an id."""
    normalized = []
    for record in records:
        if not record.get("id"):
            logger.warning(f"Skipping record without id: {record}")
            continue
        normalized.append(normalizer(record))
    return normalized
