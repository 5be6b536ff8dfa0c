"""Response types tying file delivery to transformation release."""

from __future__ import annotations

from starlette.types import Receive, Scope, Send
from fastapi.responses import FileResponse

from docforge.orchestrator import Transformation, TransformationResult

COUNT_HEADER = "X-Docforge-Count"


class ArtifactResponse(FileResponse):
    """Stream a transformation's result, then release its artifacts.

    The transformation is marked delivered only after the body was sent.
    Artifacts are released whether sending succeeded, failed or was
    cancelled by a disconnecting client.
    """

    def __init__(self, transformation: Transformation, result: TransformationResult) -> None:
        super().__init__(
            result.path,
            media_type=result.media_type,
            filename=result.download_name,
            headers={COUNT_HEADER: str(result.count)},
        )
        self.transformation = transformation

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except BaseException as exc:
            self.transformation.fail(exc)
            raise
        else:
            self.transformation.deliver()
        finally:
            self.transformation.release()


__all__ = ["ArtifactResponse", "COUNT_HEADER"]
