"""FastAPI dependencies for the external collaborators."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from umlpro_service.clients.mail import Mailer
from umlpro_service.clients.storage import StorageClient


def get_mailer() -> Mailer:
    return Mailer()


def get_storage() -> StorageClient:
    return StorageClient()


MailerDep = Annotated[Mailer, Depends(get_mailer)]
StorageDep = Annotated[StorageClient, Depends(get_storage)]
