# dashboard/access_gate.py
#
# Password prompt in front of the "enable polling" control (gated mode).
#
# This is a UX speed-bump, not authentication: the secret ships with the
# dashboard and anyone with the source or the config can recover it. Real
# access control belongs at the data source (row-level security / API keys).

import base64
import binascii
import hmac
import logging

from dashboard.config import ConfigError
from dashboard.polling import PollingController, PollingState

logger = logging.getLogger(__name__)

WRONG_PASSWORD_MESSAGE = "Incorrect password. Polling stays off."


class AccessGate:
    def __init__(self, secret_b64: str) -> None:
        try:
            self._secret = base64.b64decode(secret_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConfigError("GATE_SECRET_B64 is not valid base64") from exc
        if not self._secret:
            raise ConfigError("GATE_SECRET_B64 decodes to an empty secret")

    def check(self, password: str) -> bool:
        return hmac.compare_digest(password.encode("utf-8"), self._secret)


def enable_with_password(
    controller: PollingController, gate: AccessGate, password: str
) -> bool:
    """
    Enable polling if `password` matches the gate secret.

    On mismatch the controller stays IDLE, readings are untouched and
    `gate_error` is set on the view state for the page to show.
    """
    state = controller.state
    if controller.mode is PollingState.POLLING:
        state.gate_error = None
        return True
    if not gate.check(password):
        logger.info("Access gate rejected polling request")
        state.gate_error = WRONG_PASSWORD_MESSAGE
        return False
    state.gate_error = None
    controller.enable()
    return True
