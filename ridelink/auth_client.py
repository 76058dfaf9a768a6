"""Client-side sessions for the admin panel and the driver app."""
from typing import Optional
import logging
import secrets

from .api_client import APIError, APIService, DriverAPIService
from . import models
from . import storage as keys

logger = logging.getLogger(__name__)


class AuthService:
    """Admin login state; every action returns ``{"success": ..., ...}`` and never raises on server errors."""

    def __init__(self, api: APIService):
        self.api = api
        self.user: Optional[dict] = None
        self.loading = False
        self.error: Optional[str] = None

    @property
    def storage(self):
        return self.api.storage

    def _forget(self):
        self.storage.remove_item(keys.ADMIN_TOKEN, keys.ADMIN_USER)
        self.user = None

    async def check_auth_status(self) -> bool:
        token = self.storage.get_item(keys.ADMIN_TOKEN)
        user = self.storage.get_json(keys.ADMIN_USER)
        if not token or not user:
            return False
        self.loading = True
        try:
            resp = await self.api.auth.verify()
            if isinstance(resp, dict) and resp.get("success"):
                self.user = user
                return True
            self._forget()
            return False
        except APIError as e:
            logger.warning("auth_verify_failed: %s", e.message)
            self._forget()
            return False
        finally:
            self.loading = False

    async def _run(self, action, failure: str, on_success):
        self.loading = True
        self.error = None
        try:
            resp = await action()
            if not isinstance(resp, dict) or not resp.get("success"):
                message = (resp or {}).get("message") if isinstance(resp, dict) else None
                raise APIError(message or failure)
            return on_success(resp)
        except APIError as e:
            self.error = e.message or failure
            return {"success": False, "error": self.error}
        finally:
            self.loading = False

    async def login(self, email: str, password: str) -> dict:
        def done(resp):
            self.storage.set_item(keys.ADMIN_TOKEN, resp["token"])
            self.storage.set_json(keys.ADMIN_USER, resp["user"])
            self.user = resp["user"]
            logger.info("admin_logged_in: email=%s", email)
            return {"success": True, "user": self.user}

        return await self._run(lambda: self.api.auth.login(email, password), "Login failed", done)

    async def logout(self):
        try:
            if self.storage.get_item(keys.ADMIN_TOKEN):
                await self.api.auth.logout()
        except APIError as e:
            logger.warning("logout_error: %s", e.message)
        finally:
            self._forget()

    async def update_profile(self, **profile) -> dict:
        def done(resp):
            self.storage.set_json(keys.ADMIN_USER, resp["user"])
            self.user = resp["user"]
            return {"success": True, "user": self.user}

        return await self._run(lambda: self.api.auth.update_profile(profile), "Profile update failed", done)

    async def change_password(self, current_password: str, new_password: str) -> dict:
        return await self._run(
            lambda: self.api.auth.change_password(current_password, new_password),
            "Password change failed",
            lambda resp: {"success": True, "message": "Password changed successfully"},
        )

    async def request_password_reset(self, email: str) -> dict:
        return await self._run(
            lambda: self.api.call("/api/admin/auth/request-password-reset", "POST", {"email": email}),
            "Password reset request failed",
            lambda resp: {"success": True, "message": "Password reset email sent"},
        )

    async def reset_password(self, token: str, new_password: str) -> dict:
        return await self._run(
            lambda: self.api.call("/api/admin/auth/reset-password", "POST",
                                  {"token": token, "new_password": new_password}),
            "Password reset failed",
            lambda resp: {"success": True, "message": "Password reset successfully"},
        )

    def has_permission(self, permission: str) -> bool:
        if not self.user or not self.user.get("permissions"):
            return False
        perms = self.user["permissions"]
        return permission in perms or "all" in perms

    def has_role(self, role: str) -> bool:
        if not self.user or not self.user.get("role"):
            return False
        return self.user["role"] == role or self.user["role"] == models.ROLE_SUPER_ADMIN


class DriverSession:
    """Driver sign-in: the profile is fetched from the platform and kept under ``driverData``."""

    def __init__(self, api: DriverAPIService):
        self.api = api

    @property
    def driver(self) -> Optional[dict]:
        return self.api.storage.get_json(keys.DRIVER_DATA)

    @property
    def signed_in(self) -> bool:
        return bool(self.api.storage.get_item(keys.DRIVER_TOKEN)) and self.driver is not None

    async def sign_in(self, driver_id: str) -> dict:
        profile = await self.api.profile.get(driver_id)
        self.api.storage.set_item(keys.DRIVER_TOKEN, secrets.token_urlsafe(16))
        self.api.storage.set_json(keys.DRIVER_DATA, profile)
        logger.info("driver_signed_in: driver=%s", driver_id)
        return profile

    def sign_out(self):
        self.api.storage.remove_item(keys.DRIVER_TOKEN, keys.DRIVER_DATA)
