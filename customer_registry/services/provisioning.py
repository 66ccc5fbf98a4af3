"""
User provisioning and removal workflows.

Creating a user is three sequential writes with no shared transaction:

1. create the account in the identity store;
2. insert the profile row;
3. upsert the role assignment.

A failure in step 1 rejects the request and nothing is created. Steps 2 and 3
are best-effort enrichment: their failures are logged and reported as
warnings, and the account is kept. A missing role assignment is covered by
the ``operator`` default of the role resolver, so no compensation is
attempted.

Removal deletes the account first, then the role and profile rows. The
auxiliary deletes run even if the database cascade already removed the rows.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field

from customer_registry.core.config import settings
from customer_registry.core.exceptions import (
    AppError,
    PartialProvisioningFailure,
    ValidationError,
    WeakPasswordError,
)
from customer_registry.models.user import VALID_ROLES
from customer_registry.services.directory import UserDirectory
from customer_registry.services.identity import IdentityStore

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PROFILE_STEP = "profile"
ROLE_STEP = "role"


class ProvisioningStatus(str, enum.Enum):
    CREATED = "created"
    CREATED_WITH_WARNING = "created_with_warning"
    REJECTED = "rejected"


@dataclass
class ProvisioningResult:
    status: ProvisioningStatus
    email: str
    nome: str
    role: str
    user_id: str | None = None
    warnings: list[PartialProvisioningFailure] = field(default_factory=list)
    error: AppError | None = None

    @property
    def created(self) -> bool:
        return self.status is not ProvisioningStatus.REJECTED

    @property
    def warning_messages(self) -> list[str]:
        return [w.message for w in self.warnings]

    def raise_for_rejection(self) -> None:
        if self.error is not None:
            raise self.error


class UserProvisioner:
    def __init__(
        self,
        identity: IdentityStore,
        directory: UserDirectory,
        min_password_length: int | None = None,
    ) -> None:
        self.identity = identity
        self.directory = directory
        self.min_password_length = min_password_length or settings.MIN_PASSWORD_LENGTH

    def validate(self, email: str, password: str, nome: str, role: str) -> None:
        """Reject a request before any store is touched."""
        if not email or not password or not nome or not role:
            raise ValidationError("All fields are required")
        if not _EMAIL_RE.match(email):
            raise ValidationError("Invalid email address")
        if len(password) < self.min_password_length:
            raise WeakPasswordError(
                f"Password must be at least {self.min_password_length} characters long"
            )
        if role not in VALID_ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(VALID_ROLES)}")

    async def create_user(
        self, email: str, password: str, nome: str, role: str
    ) -> ProvisioningResult:
        email = (email or "").strip().lower()
        nome = (nome or "").strip()
        result = ProvisioningResult(
            status=ProvisioningStatus.REJECTED, email=email, nome=nome, role=role
        )

        try:
            self.validate(email, password or "", nome, role)
            account = await self.identity.create_account(email, password, {"nome": nome})
        except AppError as exc:
            logger.info("User creation rejected for %s: %s", email, exc.message)
            result.error = exc
            return result

        # Copied out before later steps can roll back and expire the instance.
        user_id = account.id
        result.user_id = user_id
        logger.info("Account created: %s (%s)", user_id, email)

        try:
            await self.directory.insert_profile(user_id, email, nome)
        except Exception as exc:  # noqa: BLE001
            logger.error("Profile creation failed for %s: %s", user_id, exc, exc_info=True)
            result.warnings.append(
                PartialProvisioningFailure(PROFILE_STEP, "User created, but the profile could not be saved")
            )

        try:
            await self.directory.upsert_role(user_id, role)
        except Exception as exc:  # noqa: BLE001
            logger.error("Role assignment failed for %s: %s", user_id, exc, exc_info=True)
            result.warnings.append(
                PartialProvisioningFailure(
                    ROLE_STEP, "User created, but permissions were not set; set them manually"
                )
            )
        else:
            logger.info("Role %s assigned to %s", role, user_id)

        result.status = (
            ProvisioningStatus.CREATED_WITH_WARNING if result.warnings else ProvisioningStatus.CREATED
        )
        return result

    async def remove_user(self, user_id: str) -> bool:
        """Remove an account and its auxiliary rows.

        Returns False when the account was already gone. Identity-store
        failures propagate and leave the auxiliary rows untouched.
        """
        existed = await self.identity.delete_account(user_id)
        if existed:
            logger.info("Account deleted: %s", user_id)
        else:
            logger.info("Account %s already absent; cleaning up auxiliary rows", user_id)

        for label, cleanup in (
            ("role", self.directory.delete_role),
            ("profile", self.directory.delete_profile),
        ):
            try:
                removed = await cleanup(user_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Could not delete %s row for %s: %s", label, user_id, exc)
            else:
                logger.debug("Deleted %d %s row(s) for %s", removed, label, user_id)
        return existed
