"""
Schéma Pydantic pour la consultation du journal d'audit.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from schoolconnect.schemas.base import CamelModel


class AuditLogResponse(CamelModel):
    id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    action: str
    entity_type: str
    entity_id: Optional[uuid.UUID] = None
    old_values: Optional[Any] = None
    new_values: Optional[Any] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
