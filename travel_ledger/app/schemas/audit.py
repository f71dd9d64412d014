"""
Audit log schemas.
"""

from datetime import datetime
from pydantic import BaseModel
from typing import Optional, Dict, Any


class AuditLogResponse(BaseModel):
    id: int
    action: str
    entity_type: Optional[str]
    entity_id: Optional[str]
    meta_data: Optional[Dict[str, Any]]
    timestamp: datetime

    class Config:
        from_attributes = True
