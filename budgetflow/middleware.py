from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

    from budgetflow.config import Settings

IDENTITY_HEADERS = ["X-User-Id", "X-Role", "X-Organization-Ids", "X-Ministry-Ids"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Allow the configured front-ends to call the API with identity headers."""
    app.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Content-Type", *IDENTITY_HEADERS],
    )
