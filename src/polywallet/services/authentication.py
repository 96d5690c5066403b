# src/polywallet/services/authentication.py
import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

from .base import BaseService
from ..exceptions import AuthenticationError, AuthenticationFailed
from ..utils.config import Config
from ..wallet.models import BiometricInfo

logger = logging.getLogger(__name__)

ChallengeCallback = Callable[[str], Union[bool, Awaitable[bool]]]


class BiometricGate:
    """Platform user-presence check.

    Subclasses wrap whatever the host offers (a fingerprint reader, an OS
    prompt, a terminal confirmation). ``challenge`` returns True only when
    the user proved presence; a declined or cancelled prompt returns False.
    """

    async def has_hardware(self) -> bool:
        raise NotImplementedError

    async def is_enrolled(self) -> bool:
        raise NotImplementedError

    async def supported_types(self) -> List[str]:
        return []

    async def challenge(
        self,
        prompt: str,
        fallback_label: str = Config.FALLBACK_LABEL,
        disable_device_fallback: bool = False
    ) -> bool:
        raise NotImplementedError


class NoBiometricGate(BiometricGate):
    """Gate for hosts without biometric hardware"""

    async def has_hardware(self) -> bool:
        return False

    async def is_enrolled(self) -> bool:
        return False

    async def challenge(self, prompt: str, fallback_label: str = Config.FALLBACK_LABEL,
                        disable_device_fallback: bool = False) -> bool:
        return False


class CallbackGate(BiometricGate):
    """Gate backed by a callable taking the prompt and returning a bool (or awaitable bool)"""

    def __init__(self, callback: ChallengeCallback, supported: Optional[List[str]] = None):
        self.callback = callback
        self.supported = supported or ["passcode"]

    async def has_hardware(self) -> bool:
        return True

    async def is_enrolled(self) -> bool:
        return True

    async def supported_types(self) -> List[str]:
        return list(self.supported)

    async def challenge(self, prompt: str, fallback_label: str = Config.FALLBACK_LABEL,
                        disable_device_fallback: bool = False) -> bool:
        if inspect.iscoroutinefunction(self.callback):
            return bool(await self.callback(prompt))
        # Blocking callbacks (a terminal prompt) must not stall the event loop
        result = await asyncio.to_thread(self.callback, prompt)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)


class AuthenticationService(BaseService):
    def __init__(self, gate: Optional[BiometricGate] = None, require_biometrics: bool = False):
        super().__init__()
        self.gate = gate or NoBiometricGate()
        self.require_biometrics = require_biometrics
        self.biometric_info: Optional[BiometricInfo] = None

    async def initialize(self) -> None:
        try:
            self.biometric_info = await self.get_biometric_info()
            self.is_initialized = True
        except Exception as e:
            self.handle_error(e, "Authentication service initialization", AuthenticationError)

    async def authenticate(
        self,
        prompt_message: str = Config.PROMPT_ACCESS_WALLET,
        fallback_label: str = Config.FALLBACK_LABEL,
        disable_device_fallback: bool = False,
        require_biometrics: bool = False
    ) -> bool:
        """Run one gate challenge; True when the user is present.

        Hosts without hardware pass without a challenge unless biometrics
        are required, per call or for the whole service.
        """
        self.validate_initialized()
        require_biometrics = require_biometrics or self.require_biometrics
        available = bool(self.biometric_info and self.biometric_info.is_available)

        if require_biometrics and not available:
            raise AuthenticationFailed("Biometric authentication required but not available")

        if not available:
            logger.warning("Biometric authentication not available, skipping authentication")
            return True

        try:
            return await self.gate.challenge(
                prompt_message,
                fallback_label=fallback_label,
                disable_device_fallback=disable_device_fallback
            )
        except Exception as e:
            self.handle_error(e, "Authentication", AuthenticationError, "Authentication could not be completed")

    async def get_biometric_info(self) -> BiometricInfo:
        try:
            is_available, is_enrolled, supported_types = await asyncio.gather(
                self.gate.has_hardware(),
                self.gate.is_enrolled(),
                self.gate.supported_types()
            )
        except Exception as e:
            self.handle_error(e, "Getting biometric info", AuthenticationError)

        return BiometricInfo(
            is_available=is_available,
            is_enrolled=is_enrolled,
            supported_types=supported_types
        )

    def is_biometrics_available(self) -> bool:
        info = self.biometric_info
        return bool(info and info.is_available and info.is_enrolled)

    def get_supported_auth_types(self) -> List[str]:
        return list(self.biometric_info.supported_types) if self.biometric_info else []

    async def require_authentication(
        self,
        message: str = "Authentication required",
        require_biometrics: bool = False
    ) -> None:
        success = await self.authenticate(
            prompt_message=message,
            require_biometrics=require_biometrics
        )
        if not success:
            raise AuthenticationFailed()
