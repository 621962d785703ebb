"""
Storage account event contracts.

    batch = parse_typed(raw_json, BlobDeleted)
    blob = batch.events[0].get_payload()
"""
from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import EventGridEvent


class BlobEventData(BaseModel):
    """Payload of blob created/deleted events."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    api: str = Field(..., description="Storage operation that triggered the event")
    client_request_id: Optional[str] = Field(default=None, alias="clientRequestId")
    request_id: Optional[str] = Field(default=None, alias="requestId")
    e_tag: Optional[str] = Field(default=None, alias="eTag")
    content_type: Optional[str] = Field(default=None, alias="contentType")
    content_length: Optional[int] = Field(default=None, alias="contentLength")
    blob_type: Optional[str] = Field(default=None, alias="blobType")
    url: str
    sequencer: Optional[str] = None
    storage_diagnostics: Dict[str, Any] = Field(default_factory=dict, alias="storageDiagnostics")


class BlobDeleted(EventGridEvent):
    """Blob removed from a storage container."""

    payload_type: ClassVar[type] = BlobEventData

    event_type: str = Field(default="Microsoft.Storage.BlobDeleted", alias="eventType", min_length=1)
    data_version: str = Field(default="1", alias="dataVersion", min_length=1)
