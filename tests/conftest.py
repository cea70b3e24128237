from pathlib import Path

import pytest

from pdf_png_service.conversion import (
    CompletionAggregator,
    ConversionError,
    ConversionService,
    NotificationError,
    OrderItemRecord,
    RasterOptions,
    TransferError,
)
from pdf_png_service.conversion.filenames import image_path_for, local_name_for

APPROVED = "approved-status"


class FakeStorage:
    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}
        self.downloads: list[tuple[str, str, str]] = []
        self.uploads: list[tuple[str, str]] = []
        self.fail_upload = False
        self.download_error: Exception | None = None

    def download(self, bucket: str, key: str, dest_dir: str) -> str:
        self.downloads.append((bucket, key, dest_dir))
        if self.download_error is not None:
            raise self.download_error
        if (bucket, key) not in self.objects:
            raise TransferError(f"object gs://{bucket}/{key} not found")
        dest = Path(dest_dir) / local_name_for(key)
        dest.write_bytes(self.objects[(bucket, key)])
        return str(dest)

    def upload(self, local_path: str, bucket: str, key: str) -> None:
        if self.fail_upload:
            raise TransferError(f"access denied writing gs://{bucket}/{key}")
        self.objects[(bucket, key)] = Path(local_path).read_bytes()
        self.uploads.append((bucket, key))


class FakeRasterizer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, RasterOptions]] = []
        self.produced: dict[str, bytes] = {}
        self.fail = False

    def render(self, input_path: str, options: RasterOptions) -> str:
        self.calls.append((input_path, options))
        if self.fail:
            raise ConversionError("ghostscript conversion failed", returncode=1, stderr="Unrecoverable error")
        out = image_path_for(input_path)
        data = b"\x89PNG\r\n" + Path(input_path).read_bytes()
        Path(out).write_bytes(data)
        self.produced[out] = data
        return out


class FakeOrderStore:
    def __init__(self, items: dict[str, dict[str, object]] | None = None) -> None:
        self.items: dict[str, dict[str, object]] = items or {}
        self.claimed: set[str] = set()

    def mark_extracted(self, order_item_id: str) -> None:
        self.items.setdefault(order_item_id, {})["pngExtracted"] = True

    def list_items(self, order_id: str) -> list[OrderItemRecord]:
        return [
            OrderItemRecord.from_record(item_id, data)
            for item_id, data in self.items.items()
            if data.get("order") == order_id
        ]

    def claim_notification(self, order_id: str) -> bool:
        if order_id in self.claimed:
            return False
        self.claimed.add(order_id)
        return True


class FakeNotifier:
    def __init__(self) -> None:
        self.orders: list[str] = []
        self.fail = False

    def notify(self, order_id: str) -> None:
        if self.fail:
            raise NotificationError(f"webhook for order {order_id} failed: 502 Server Error")
        self.orders.append(order_id)


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def rasterizer() -> FakeRasterizer:
    return FakeRasterizer()


@pytest.fixture()
def order_store() -> FakeOrderStore:
    return FakeOrderStore()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def work_dir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture()
def service(storage, rasterizer, order_store, notifier, work_dir) -> ConversionService:
    aggregator = CompletionAggregator(order_store, approved_status=APPROVED)
    return ConversionService(
        storage=storage,
        rasterizer=rasterizer,
        aggregator=aggregator,
        notifier=notifier,
        destination_bucket="pdf-to-png-output",
        work_dir=str(work_dir),
    )
