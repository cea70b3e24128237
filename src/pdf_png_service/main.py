"""Process wiring and the direct storage-trigger entry point.

`build_service` constructs the SDK-backed gateways once per process.
`handle_storage_event` is the background-function style trigger: it receives
the object descriptor ``{bucket, name, contentType, ...}`` and has no
response channel, so every outcome is only logged.
"""

import logging

from . import config
from .conversion import (
    CompletionAggregator,
    ConversionError,
    ConversionEvent,
    ConversionService,
    InputError,
    PipelineError,
)
from .conversion.adapters import (
    FirebaseOrderStore,
    GcsStorage,
    GhostscriptRasterizer,
    WebhookNotifier,
    load_credentials_info,
)
from .logger import configure_logging

logger = logging.getLogger(__name__)

SERVICE: ConversionService | None = None


def build_service() -> ConversionService:
    configure_logging()
    credentials_info = load_credentials_info(config.SERVICE_ACCOUNT_JSON)

    storage = GcsStorage(credentials_info=credentials_info)
    rasterizer = GhostscriptRasterizer(config.GHOSTSCRIPT_BIN, timeout_sec=config.GHOSTSCRIPT_TIMEOUT_SEC)

    aggregator = None
    if config.FIREBASE_DATABASE_URL and config.DASHBOARD_ID:
        store = FirebaseOrderStore.from_settings(
            database_url=config.FIREBASE_DATABASE_URL,
            dashboard_id=config.DASHBOARD_ID,
            credentials_info=credentials_info,
        )
        if not config.APPROVED_STATUS:
            logger.warning("APPROVED_STATUS not set; no order will ever be reported complete")
        aggregator = CompletionAggregator(
            store,
            approved_status=config.APPROVED_STATUS,
            notify_once=config.NOTIFY_ONCE,
        )
    else:
        logger.warning("FIREBASE_DATABASE_URL/DASHBOARD_ID not set; order tracking disabled")

    notifier = None
    if config.WEBHOOK_URL:
        notifier = WebhookNotifier(
            config.WEBHOOK_URL,
            params={"workflow": config.WEBHOOK_WORKFLOW, "dashboard": config.DASHBOARD_ID},
            timeout_sec=config.WEBHOOK_TIMEOUT_SEC,
        )

    return ConversionService(
        storage=storage,
        rasterizer=rasterizer,
        aggregator=aggregator,
        notifier=notifier,
        destination_bucket=config.DESTINATION_BUCKET,
        work_dir=config.WORK_DIR,
    )


def get_service() -> ConversionService:
    global SERVICE
    if SERVICE is None:
        SERVICE = build_service()
    return SERVICE


def handle_storage_event(event: dict[str, object], context: object = None) -> None:
    """Background function entry point for object-finalize events.

    A name without ``(order)(item)`` is still converted; only order tracking
    is skipped.
    """
    service = get_service()
    try:
        conversion_event = ConversionEvent.from_object(event, default_bucket=config.SOURCE_BUCKET)
        result = service.process(conversion_event, require_identifiers=False)
    except InputError as e:
        logger.warning("Ignoring storage event: %s", e)
        return
    except ConversionError as e:
        logger.error("Error handling PDF->PNG for %s: %s", event.get("name"), e.diagnostics())
        return
    except PipelineError:
        logger.exception("Error handling PDF->PNG for %s", event.get("name"))
        return
    except Exception:
        logger.exception("Unexpected error handling PDF->PNG for %s", event.get("name"))
        return
    if result is not None:
        logger.info("Converted %s", result.as_dict())
