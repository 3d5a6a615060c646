"""Config flow that signs in to an Eight Sleep account."""

import logging
from typing import Any

import httpx
import voluptuous as vol
from homeassistant.config_entries import ConfigFlow, ConfigFlowResult
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD
from homeassistant.helpers.httpx_client import get_async_client

from . import api
from .const import (
    DOMAIN,
    ERROR_API_ERROR,
    ERROR_CANNOT_CONNECT,
    ERROR_INVALID_AUTH,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
)

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_EMAIL): str,
        vol.Required(CONF_PASSWORD): str,
    }
)

# Checked in order, so subclasses must come before their base class
LOGIN_ERRORS: tuple[tuple[type[Exception], str], ...] = (
    (api.EightSleepApiAuthError, ERROR_INVALID_AUTH),
    (httpx.ConnectError, ERROR_CANNOT_CONNECT),
    (httpx.TimeoutException, ERROR_TIMEOUT),
    (api.EightSleepApiClientError, ERROR_API_ERROR),
)


def login_error_code(err: Exception) -> str:
    """Return the form error shown for a failed login."""
    for error_type, code in LOGIN_ERRORS:
        if isinstance(err, error_type):
            return code
    return ERROR_UNKNOWN


class EightSleepConfigFlow(ConfigFlow, domain=DOMAIN):
    """Create one entry per Eight Sleep account."""

    VERSION = 1

    async def _async_try_login(self, email: str, password: str) -> str | None:
        """Log in once and return an error code, or None on success."""
        try:
            await api.async_login(get_async_client(self.hass), email, password)
        except Exception as err:
            code = login_error_code(err)
            if code == ERROR_INVALID_AUTH:
                _LOGGER.warning("Eight Sleep rejected the credentials of %s", email)
            else:
                _LOGGER.error("Login check for %s failed with %s: %s", email, code, err)
            return code

        _LOGGER.info("Credentials of %s accepted by Eight Sleep", email)
        return None

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Ask for the account credentials and check them with a login."""
        errors: dict[str, str] = {}
        data_schema = STEP_USER_DATA_SCHEMA

        if user_input is not None:
            email = user_input[CONF_EMAIL]
            error = await self._async_try_login(email, user_input[CONF_PASSWORD])
            if error is None:
                await self.async_set_unique_id(email.lower())
                self._abort_if_unique_id_configured()
                return self.async_create_entry(
                    title=f"Eight Sleep ({email})",
                    data={
                        CONF_EMAIL: email,
                        CONF_PASSWORD: user_input[CONF_PASSWORD],
                    },
                )

            errors["base"] = error
            # Keep the email filled in, never the password
            data_schema = self.add_suggested_values_to_schema(
                STEP_USER_DATA_SCHEMA, {CONF_EMAIL: email}
            )

        return self.async_show_form(
            step_id="user",
            data_schema=data_schema,
            errors=errors,
        )
