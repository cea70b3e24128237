class PipelineError(RuntimeError):
    """Base class for failures while handling one storage event."""


class InputError(PipelineError):
    """The event does not describe a file this service can process."""


class TransferError(PipelineError):
    """Downloading from or uploading to object storage failed."""


class ConversionError(PipelineError):
    """The rasterizer could not be launched or reported failure."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def diagnostics(self) -> str:
        parts = [str(self)]
        if self.returncode is not None:
            parts.append(f"exit status {self.returncode}")
        if self.stderr:
            parts.append(f"stderr: {self.stderr.strip()}")
        if self.stdout:
            parts.append(f"stdout: {self.stdout.strip()}")
        return "; ".join(parts)


class OrderStoreError(PipelineError):
    """Reading or writing order item records failed."""


class NotificationError(PipelineError):
    """The completion webhook could not be delivered."""
