import logging

from .aggregation import CompletionAggregator
from .errors import InputError, NotificationError
from .filenames import is_pdf, output_key_for, parse_identifiers
from .interfaces import (
    ConversionEvent,
    ConversionResult,
    FilenameIdentifiers,
    NotifierGateway,
    RasterizerGateway,
    RasterOptions,
    StorageGateway,
)
from .workspace import create_workspace, delete_workspace

logger = logging.getLogger(__name__)

PNG_PROFILE = RasterOptions(device="png256", resolution_dpi=72)


class EventState:
    RECEIVED = "received"
    FILENAME_VALIDATED = "filename_validated"
    WORKSPACE_READY = "workspace_ready"
    DOWNLOADED = "downloaded"
    CONVERTED = "converted"
    UPLOADED = "uploaded"
    STATUS_UPDATED = "status_updated"
    AGGREGATION_CHECKED = "aggregation_checked"
    NOTIFIED = "notified"
    NOT_SENT = "not_sent"
    WORKSPACE_CLEANED = "workspace_cleaned"


class ConversionService:
    """Core domain service handling one finalized-PDF event at a time.

    Framework-agnostic: the HTTP push endpoint and the background function
    entry point both call `process`. Storage, rasterization, the order store
    and the webhook are reached only through gateways so they can be
    replaced in tests.
    """

    def __init__(
        self,
        storage: StorageGateway,
        rasterizer: RasterizerGateway,
        aggregator: CompletionAggregator | None,
        notifier: NotifierGateway | None,
        *,
        destination_bucket: str | None = None,
        work_dir: str | None = None,
        options: RasterOptions = PNG_PROFILE,
    ) -> None:
        self._storage = storage
        self._rasterizer = rasterizer
        self._aggregator = aggregator
        self._notifier = notifier
        self._destination_bucket = destination_bucket or None
        self._work_dir = work_dir
        self._options = options

    def destination_for(self, event: ConversionEvent) -> str:
        return self._destination_bucket or event.bucket

    def process(self, event: ConversionEvent, *, require_identifiers: bool = False) -> ConversionResult | None:
        """Convert one PDF and update order tracking.

        Returns None when the object is not a PDF. Raises InputError before
        any side effect when ``require_identifiers`` is set and the name has
        no ``(order)(item)`` pair. Transfer and conversion failures propagate
        after the workspace has been removed.
        """
        key = event.name
        self._transition(EventState.RECEIVED, key)
        logger.info("Received finalize event for file: %s in bucket: %s", key, event.bucket)

        if not is_pdf(key):
            logger.info("Skipping non-PDF file: %s", key)
            return None

        identifiers = parse_identifiers(key)
        if identifiers is None:
            if require_identifiers:
                raise InputError(f"Invalid file name format: {key}")
            logger.info("No order identifiers in %s; skipping status tracking", key)
        else:
            logger.info(
                "Extracted orderId: %s, orderItemId: %s", identifiers.order_id, identifiers.order_item_id
            )
        self._transition(EventState.FILENAME_VALIDATED, key)

        output_bucket = self.destination_for(event)
        output_key = output_key_for(key)

        workspace = create_workspace(key, root=self._work_dir)
        try:
            self._transition(EventState.WORKSPACE_READY, key)
            local_pdf = self._storage.download(event.bucket, key, workspace.path)
            self._transition(EventState.DOWNLOADED, key)
            local_png = self._rasterizer.render(local_pdf, self._options)
            self._transition(EventState.CONVERTED, key)
            self._storage.upload(local_png, output_bucket, output_key)
            self._transition(EventState.UPLOADED, key)

            complete = notified = False
            if identifiers is not None and self._aggregator is not None:
                complete, notified = self._track_completion(identifiers, key)
        finally:
            delete_workspace(workspace.path)
            self._transition(EventState.WORKSPACE_CLEANED, key)

        logger.info("Successfully converted %s -> %s", key, output_key)
        return ConversionResult(
            source_bucket=event.bucket,
            source_key=key,
            output_bucket=output_bucket,
            output_key=output_key,
            identifiers=identifiers,
            order_complete=complete,
            notified=notified,
        )

    def _track_completion(self, identifiers: FilenameIdentifiers, key: str) -> tuple[bool, bool]:
        assert self._aggregator is not None
        self._aggregator.mark_extracted(identifiers.order_item_id)
        self._transition(EventState.STATUS_UPDATED, key)

        complete = self._aggregator.is_order_complete(identifiers.order_id)
        self._transition(EventState.AGGREGATION_CHECKED, key)
        if not complete or not self._aggregator.should_notify(identifiers.order_id):
            self._transition(EventState.NOT_SENT, key)
            return complete, False
        return complete, self._notify(identifiers.order_id, key)

    def _notify(self, order_id: str, key: str) -> bool:
        if self._notifier is None:
            logger.warning("Order %s is complete but no webhook is configured", order_id)
            self._transition(EventState.NOT_SENT, key)
            return False
        try:
            self._notifier.notify(order_id)
        except NotificationError as e:
            logger.error("Failed to notify webhook for order %s: %s", order_id, e)
            self._transition(EventState.NOT_SENT, key)
            return False
        self._transition(EventState.NOTIFIED, key)
        return True

    @staticmethod
    def _transition(state: str, key: str) -> None:
        logger.info("event %s -> %s", key, state)
