"""
Mixins SQLAlchemy pour les modèles
Projet : Orbital (Facturation)

Colonnes communes : identifiant UUID, horodatage, propriétaire.
"""

import datetime
import uuid

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, Session, mapped_column
from sqlalchemy.sql import func


class TimestampMixin:
    """
    Horodatage automatique de création et de mise à jour.

    - created_at : posé par le serveur à l'insertion
    - updated_at : rafraîchi avant chaque flush (voir `update_timestamp`)
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Date/heure de création",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Date/heure de dernière mise à jour",
    )


class UUIDMixin:
    """Clé primaire UUID générée côté application."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="Clé primaire UUID",
    )


class OwnedMixin:
    """
    Rattachement à l'utilisateur propriétaire.

    Toute lecture et toute écriture filtrent sur `user_id`.
    """

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="Identifiant de l'utilisateur propriétaire (claim `sub` du jeton)",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """Met à jour `updated_at` des objets nouveaux ou modifiés."""
    now = datetime.datetime.now(datetime.timezone.utc)

    for obj in session.dirty:
        if hasattr(obj, "updated_at") and session.is_modified(obj, include_collections=False):
            obj.updated_at = now

    for obj in session.new:
        if hasattr(obj, "updated_at"):
            obj.updated_at = now
