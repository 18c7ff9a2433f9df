"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any


class TelemetryModel(BaseModel):
    """Base model: camelCase on the wire, snake_case accepted too."""
    model_config = ConfigDict(populate_by_name=True)


class TypingPatterns(TelemetryModel):
    """Raw typing patterns of the login fields."""
    username: Optional[str] = None
    password: Optional[str] = None


class LegacyTypingPatterns(TelemetryModel):
    """Typing patterns as sent by older capture clients."""
    last_user_tp: Optional[str] = Field(default=None, alias="lastUserTp")
    last_pass_tp: Optional[str] = Field(default=None, alias="lastPassTp")


class TrajectoryPointModel(TelemetryModel):
    """One cursor sample (finite coordinates only)."""
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)

    x: float
    y: float
    t: Optional[float] = None


class TrajectoryModel(TelemetryModel):
    """Sampled mouse trajectory."""
    sample: List[TrajectoryPointModel] = Field(default_factory=list)
    captured: bool = False


class AutomationFlags(TelemetryModel):
    """Automation-environment probes reported by the client."""
    has_chromium_automation: bool = Field(default=False, alias="hasChromiumAutomation")
    has_selenium: bool = Field(default=False, alias="hasSelenium")
    has_phantom: bool = Field(default=False, alias="hasPhantom")
    headless_chrome: bool = Field(default=False, alias="headlessChrome")
    no_plugins: bool = Field(default=False, alias="noPlugins")
    zero_window_size: bool = Field(default=False, alias="zeroWindowSize")


class LoginTelemetry(TelemetryModel):
    """Request payload for /analyze: everything captured for one login."""
    typing_pattern: Optional[TypingPatterns] = Field(default=None, alias="typingPattern")
    typingdna: Optional[LegacyTypingPatterns] = None
    trajectory: Optional[TrajectoryModel] = None

    username_to_password_ms: Optional[int] = Field(default=None, alias="usernameToPasswordMs")
    password_to_login_ms: Optional[int] = Field(default=None, alias="passwordToLoginMs")

    paste_user: int = Field(default=0, ge=0, alias="pasteUser")
    paste_pass: int = Field(default=0, ge=0, alias="pastePass")

    ime_user: Optional[int] = Field(default=None, ge=0, alias="imeUser")
    username_ime_composition_count: Optional[int] = Field(
        default=None, ge=0, alias="usernameIMECompositionCount"
    )
    ime_pass: Optional[int] = Field(default=None, ge=0, alias="imePass")
    password_ime_composition_count: Optional[int] = Field(
        default=None, ge=0, alias="passwordIMECompositionCount"
    )

    shift_count: Optional[int] = Field(default=None, ge=0, alias="shiftCount")
    password_shift_count: Optional[int] = Field(default=None, ge=0, alias="passwordShiftCount")
    caps_lock_count: Optional[int] = Field(default=None, ge=0, alias="capsLockCount")
    password_caps_lock_count: Optional[int] = Field(
        default=None, ge=0, alias="passwordCapsLockCount"
    )

    # Only used for character-class checks; never logged or echoed back
    password: Optional[str] = Field(default=None, repr=False)

    webdriver_detected: bool = Field(default=False, alias="webdriverDetected")
    automation_flags: Optional[AutomationFlags] = Field(default=None, alias="automationFlags")

    untrusted_events: int = Field(default=0, ge=0, alias="untrustedEvents")
    synthetic_key_events: Optional[int] = Field(default=None, ge=0, alias="syntheticKeyEvents")
    total_key_events: int = Field(default=0, ge=0, alias="totalKeyEvents")

    @property
    def username_pattern(self) -> Optional[str]:
        if self.typing_pattern and self.typing_pattern.username:
            return self.typing_pattern.username
        return self.typingdna.last_user_tp if self.typingdna else None

    @property
    def password_pattern(self) -> Optional[str]:
        if self.typing_pattern and self.typing_pattern.password:
            return self.typing_pattern.password
        return self.typingdna.last_pass_tp if self.typingdna else None

    # Counters reported under two names: the first non-zero one wins

    @property
    def ime_username_count(self) -> int:
        return self.ime_user or self.username_ime_composition_count or 0

    @property
    def ime_password_count(self) -> int:
        return self.ime_pass or self.password_ime_composition_count or 0

    @property
    def ime_total(self) -> int:
        return self.ime_username_count + self.ime_password_count

    @property
    def shift_used(self) -> int:
        return self.shift_count or self.password_shift_count or 0

    @property
    def caps_lock_used(self) -> int:
        return self.caps_lock_count or self.password_caps_lock_count or 0

    @property
    def synthetic_key_ratio(self) -> float:
        """Share of keyboard events that were synthetic (0 when unknown)."""
        if self.synthetic_key_events is None or self.total_key_events <= 0:
            return 0.0
        return self.synthetic_key_events / self.total_key_events


class AnalysisResponse(BaseModel):
    """Response payload for /analyze."""
    model_config = ConfigDict(populate_by_name=True)

    is_bot: bool = Field(alias="isBot")
    confidence: int = Field(ge=0, le=100)
    reasons: List[str]
    scores: Dict[str, float]
    details: Dict[str, Any] = Field(default_factory=dict)


class ThresholdsResponse(BaseModel):
    """Response payload for /thresholds."""
    policy: str
    thresholds: Dict[str, Dict[str, Any]]
