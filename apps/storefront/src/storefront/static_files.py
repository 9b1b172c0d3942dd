from __future__ import annotations

from starlette.exceptions import HTTPException
from starlette.responses import Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope


class SinglePageStaticFiles(StaticFiles):
    """Static files with ``index.html`` served for unknown paths."""

    def __init__(self, directory: str, index_file: str = "index.html") -> None:
        super().__init__(directory=directory, html=True, check_dir=True)
        self._index_file = index_file

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
            return await super().get_response(self._index_file, scope)
