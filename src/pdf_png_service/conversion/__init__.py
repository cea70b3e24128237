"""
Domain layer for PDF-to-PNG conversion.
Provides interfaces (gateways), the per-event conversion service and the
order completion aggregator, abstracting Cloud Storage, Ghostscript, the
Realtime Database and the webhook so trigger surfaces (HTTP push or
background functions) share the same core logic.
"""

from .aggregation import CompletionAggregator, all_approved_extracted
from .errors import (
    ConversionError,
    InputError,
    NotificationError,
    OrderStoreError,
    PipelineError,
    TransferError,
)
from .filenames import is_pdf, output_key_for, parse_identifiers
from .interfaces import (
    ConversionEvent,
    ConversionResult,
    FilenameIdentifiers,
    NotifierGateway,
    OrderItemRecord,
    OrderStoreGateway,
    RasterizerGateway,
    RasterOptions,
    StorageGateway,
    Workspace,
)
from .service import PNG_PROFILE, ConversionService, EventState
from .workspace import create_workspace, delete_workspace
