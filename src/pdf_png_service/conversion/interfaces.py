from dataclasses import dataclass, field
from typing import Protocol

from .errors import InputError


@dataclass(frozen=True)
class ConversionEvent:
    """A finalized object in storage, as delivered by either trigger."""

    bucket: str
    name: str
    content_type: str | None = None
    payload: dict[str, object] = field(default_factory=dict, compare=False)

    @classmethod
    def from_object(cls, data: dict[str, object], *, default_bucket: str = "") -> "ConversionEvent":
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise InputError("storage event is missing the object name")
        bucket = data.get("bucket") or default_bucket
        content_type = data.get("contentType")
        return cls(
            bucket=str(bucket),
            name=name,
            content_type=str(content_type) if content_type else None,
            payload=dict(data),
        )


@dataclass(frozen=True)
class FilenameIdentifiers:
    order_id: str
    order_item_id: str


@dataclass(frozen=True)
class OrderItemRecord:
    order_item_id: str
    order: str | None
    order_item_status: str | None
    png_extracted: bool = False

    @classmethod
    def from_record(cls, order_item_id: str, data: dict[str, object]) -> "OrderItemRecord":
        order = data.get("order")
        status = data.get("orderItemStatus")
        return cls(
            order_item_id=order_item_id,
            order=str(order) if order is not None else None,
            order_item_status=str(status) if status is not None else None,
            png_extracted=bool(data.get("pngExtracted", False)),
        )


@dataclass(frozen=True)
class RasterOptions:
    device: str = "png256"
    resolution_dpi: int = 72


@dataclass(frozen=True)
class Workspace:
    path: str
    object_key: str


@dataclass(frozen=True)
class ConversionResult:
    source_bucket: str
    source_key: str
    output_bucket: str
    output_key: str
    identifiers: FilenameIdentifiers | None = None
    order_complete: bool = False
    notified: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "source": f"gs://{self.source_bucket}/{self.source_key}",
            "output": f"gs://{self.output_bucket}/{self.output_key}",
            "order_id": self.identifiers.order_id if self.identifiers else None,
            "order_item_id": self.identifiers.order_item_id if self.identifiers else None,
            "order_complete": self.order_complete,
            "notified": self.notified,
        }


class StorageGateway(Protocol):
    def download(self, bucket: str, key: str, dest_dir: str) -> str:
        """Fetch gs://bucket/key into dest_dir and return the local path."""

    def upload(self, local_path: str, bucket: str, key: str) -> None:
        """Write local_path to gs://bucket/key, replacing any existing object."""


class RasterizerGateway(Protocol):
    def render(self, input_path: str, options: RasterOptions) -> str:
        """Rasterize input_path and return the path of the produced image.
        This is a blocking call; callers should offload to threads if needed.
        """


class OrderStoreGateway(Protocol):
    def mark_extracted(self, order_item_id: str) -> None:
        ...

    def list_items(self, order_id: str) -> list[OrderItemRecord]:
        ...

    def claim_notification(self, order_id: str) -> bool:
        ...


class NotifierGateway(Protocol):
    def notify(self, order_id: str) -> None:
        ...
