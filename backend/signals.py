"""
Signal catalog for login bot detection.

Every detector is a table of SignalRule entries (predicate, weight, tag,
reason template) evaluated by one generic fold, evaluate_rules(). Detectors
are pure: they read a descriptor plus the threshold table and return fresh
Flag objects.

Detector groups:
- Field typing (seek/press timing of one field)
- Gaussian-likeness of seek interval distributions
- Mouse trajectory automation and sufficiency
- Password complexity vs. Shift/CapsLock usage
- Automation-environment probes (WebDriver, headless browsers)
- Synthetic DOM events
- Inter-field timing gaps, paste usage, IME and modifier key usage
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from distribution import DistributionSummary
from keystroke_features import FieldPattern
from schemas import LoginTelemetry
from thresholds import DEFAULT_THRESHOLDS, ThresholdTable
from trajectory import TrajectorySummary


class Tag(str, Enum):
    """Which verdict a flag argues for."""
    BOT = "bot"
    HUMAN = "human"


# Reason label prefixes
GROUP_USERNAME = "Username"
GROUP_PASSWORD = "Password"
GROUP_USERNAME_SEEK = "Username SeekTime"
GROUP_PASSWORD_SEEK = "Password SeekTime"
GROUP_TIMING = "Timing"
GROUP_TRAJECTORY = "Trajectory"
GROUP_PASTE = "Paste"
GROUP_INPUT = "Input"
GROUP_AUTOMATION = "Automation"
GROUP_EVENTS = "Events"


@dataclass(frozen=True)
class Flag:
    """One triggered signal."""
    tag: Tag
    weight: float
    reason: str
    group: str = ""

    @property
    def labelled_reason(self) -> str:
        return f"[{self.group}] {self.reason}" if self.group else self.reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag.value,
            "weight": self.weight,
            "reason": self.reason,
            "group": self.group,
        }


@dataclass(frozen=True)
class SignalRule:
    """
    One catalog entry.

    ``reason`` is a str.format template receiving the descriptor as ``s``
    and the threshold table as ``th``.
    """
    name: str
    predicate: Callable[[Any, ThresholdTable], bool]
    weight: float
    tag: Tag
    reason: str


def evaluate_rules(
    rules: Sequence[SignalRule],
    subject: Any,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = "",
) -> List[Flag]:
    """
    Fold a rule table over one descriptor.

    Args:
        rules: Rule table, evaluated in order
        subject: Descriptor the predicates and templates read
        thresholds: Threshold table
        group: Label prefix attached to every produced flag

    Returns:
        Flags of the rules whose predicate holds, in table order
    """
    return [
        Flag(
            tag=rule.tag,
            weight=rule.weight,
            reason=rule.reason.format(s=subject, th=thresholds),
            group=group,
        )
        for rule in rules
        if rule.predicate(subject, thresholds)
    ]


# =============================================================================
# FIELD TYPING
# =============================================================================

FIELD_TYPING_RULES = (
    SignalRule(
        "seek_too_fast",
        lambda s, th: s.seek_time.avg < th.seek_time.too_fast,
        3, Tag.BOT,
        "Extremely short key interval ({s.seek_time.avg}ms < {th.seek_time.too_fast}ms)",
    ),
    SignalRule(
        "seek_short",
        lambda s, th: th.seek_time.too_fast <= s.seek_time.avg < th.seek_time.bot_max,
        2, Tag.BOT,
        "Key interval too short ({s.seek_time.avg}ms < {th.seek_time.bot_max}ms)",
    ),
    SignalRule(
        "seek_uniform",
        lambda s, th: s.seek_time.std < th.seek_time.uniform_std_max and s.keystroke_count > 3,
        2, Tag.BOT,
        "Key interval too uniform (std={s.seek_time.std}ms < {th.seek_time.uniform_std_max}ms)",
    ),
    SignalRule(
        "press_short",
        lambda s, th: 0 < s.press_time.avg < th.press_time.bot_max,
        2, Tag.BOT,
        "Extremely short key press ({s.press_time.avg}ms < {th.press_time.bot_max}ms)",
    ),
    SignalRule(
        "press_uniform",
        lambda s, th: (
            s.press_time.std < th.press_time.uniform_std_max
            and s.keystroke_count > 3
            and s.press_time.avg > 0
        ),
        2, Tag.BOT,
        "Key press too uniform (std={s.press_time.std}ms < {th.press_time.uniform_std_max}ms)",
    ),
    SignalRule(
        "seek_range_narrow",
        lambda s, th: (
            s.seek_time.value_range < th.anti_bot.seek_time_min_range
            and s.keystroke_count > 5
        ),
        2, Tag.BOT,
        "SeekTime range too narrow ({s.seek_time.value_range}ms < {th.anti_bot.seek_time_min_range}ms)",
    ),
    SignalRule(
        "seek_normal",
        lambda s, th: s.seek_time.avg > th.seek_time.human_min,
        1, Tag.HUMAN,
        "Normal key interval ({s.seek_time.avg}ms)",
    ),
    SignalRule(
        "press_normal",
        lambda s, th: s.press_time.avg > th.press_time.human_min,
        1, Tag.HUMAN,
        "Normal key press ({s.press_time.avg}ms)",
    ),
    SignalRule(
        "long_pauses",
        lambda s, th: s.long_pauses > 0,
        2, Tag.HUMAN,
        "Has long pauses ({s.long_pauses}x > 500ms)",
    ),
)


def analyze_field_typing(
    pattern: Optional[FieldPattern],
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = "",
) -> List[Flag]:
    """
    Flag seek/press timing of one typed field.

    Args:
        pattern: Decoded field pattern (None when nothing was typed)
        thresholds: Threshold table
        group: Label prefix, e.g. "Username"

    Returns:
        Bot and human flags; empty when the field has no keystrokes
    """
    if pattern is None or pattern.keystroke_count == 0:
        return []
    return evaluate_rules(FIELD_TYPING_RULES, pattern, thresholds, group)


# =============================================================================
# DISTRIBUTION SHAPE
# =============================================================================

GAUSSIAN_RULES = (
    SignalRule(
        "near_normal",
        lambda s, th: (
            abs(s.skewness) < th.anti_bot.skewness_threshold
            and th.anti_bot.kurtosis_min < s.kurtosis < th.anti_bot.kurtosis_max
        ),
        2, Tag.BOT,
        "Distribution too close to Gaussian (skew={s.skewness}, kurtosis={s.kurtosis})",
    ),
    SignalRule(
        "round_numbers",
        lambda s, th: s.round_number_ratio > th.anti_bot.round_number_ratio,
        2, Tag.BOT,
        "Too many round numbers ({s.round_number_ratio:.0%} are multiples of 10ms)",
    ),
    SignalRule(
        "consecutive_similar",
        lambda s, th: s.max_consecutive_similar > th.anti_bot.consecutive_similar_max,
        2, Tag.BOT,
        "{s.max_consecutive_similar} consecutive similar intervals detected",
    ),
    SignalRule(
        "cv_band",
        lambda s, th: th.anti_bot.cv_min < s.cv < th.anti_bot.cv_max,
        2, Tag.BOT,
        "Coefficient of variation suggests programmatic randomness (CV={s.cv})",
    ),
)


def detect_gaussian_pattern(
    distribution: Optional[DistributionSummary],
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = "",
) -> List[Flag]:
    """
    Flag interval distributions that look generated rather than typed.

    Invalid and uniform summaries carry no moments and produce no flags.
    """
    if distribution is None or not distribution.has_moments:
        return []
    return evaluate_rules(GAUSSIAN_RULES, distribution, thresholds, group)


# =============================================================================
# MOUSE TRAJECTORY
# =============================================================================

TRAJECTORY_AUTOMATION_RULES = (
    SignalRule(
        "too_smooth",
        lambda s, th: s.smooth_ratio > th.anti_bot.trajectory_smooth_max,
        3, Tag.BOT,
        "Mouse trajectory too smooth ({s.smooth_ratio:.0%}), likely Bezier curve",
    ),
    SignalRule(
        "no_corrections",
        lambda s, th: s.correction_ratio < th.anti_bot.trajectory_correction_min and s.points > 10,
        2, Tag.BOT,
        "No micro-corrections in mouse movement ({s.correction_ratio:.0%})",
    ),
    SignalRule(
        "uniform_timing",
        lambda s, th: (
            s.interval_stats is not None
            and s.interval_stats.has_moments
            and s.interval_stats.cv < th.anti_bot.trajectory_interval_cv_max
        ),
        2, Tag.BOT,
        "Mouse movement timing too uniform (CV={s.interval_stats.cv})",
    ),
)


def detect_trajectory_automation(
    summary: Optional[TrajectorySummary],
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_TRAJECTORY,
) -> List[Flag]:
    """Flag machine-generated cursor paths (no flags for invalid summaries)."""
    if summary is None or not summary.valid:
        return []
    return evaluate_rules(TRAJECTORY_AUTOMATION_RULES, summary, thresholds, group)


@dataclass(frozen=True)
class TrajectoryCoverage:
    """How much cursor movement was captured at all."""
    points: int
    distance: int
    captured: bool


TRAJECTORY_SUFFICIENCY_RULES = (
    SignalRule(
        "too_few_points",
        lambda s, th: s.points < th.trajectory.min_points,
        1, Tag.BOT,
        "Too few trajectory points ({s.points} < {th.trajectory.min_points})",
    ),
    SignalRule(
        "too_short",
        lambda s, th: s.distance < th.trajectory.min_distance and s.captured,
        1, Tag.BOT,
        "Mouse distance too short ({s.distance}px < {th.trajectory.min_distance}px)",
    ),
    SignalRule(
        "natural_movement",
        lambda s, th: s.points > 5 and s.distance > 100,
        2, Tag.HUMAN,
        "Natural mouse movement ({s.points} points, {s.distance}px)",
    ),
)


def detect_trajectory_sufficiency(
    coverage: TrajectoryCoverage,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_TRAJECTORY,
) -> List[Flag]:
    """Flag missing or negligible cursor movement."""
    return evaluate_rules(TRAJECTORY_SUFFICIENCY_RULES, coverage, thresholds, group)


# =============================================================================
# PASSWORD COMPLEXITY VS. KEY USAGE
# =============================================================================

_UPPER_CASE = re.compile(r"[A-Z]")
_SPECIAL_CHAR = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?`~]")


@dataclass(frozen=True)
class PasswordAnalysis:
    """Character classes of the password vs. the keys used to type it."""
    has_upper_case: bool
    has_special_char: bool
    needs_shift: bool
    used_shift_or_caps: bool
    used_paste: bool

    def to_dict(self) -> Dict[str, bool]:
        return {
            "hasUpperCase": self.has_upper_case,
            "hasSpecialChar": self.has_special_char,
            "needsShift": self.needs_shift,
            "usedShiftOrCaps": self.used_shift_or_caps,
            "usedPaste": self.used_paste,
        }


def analyze_password(request: LoginTelemetry) -> Optional[PasswordAnalysis]:
    """
    Classify the password characters against Shift/CapsLock/paste usage.

    Returns:
        PasswordAnalysis, or None when no password was supplied
    """
    password = request.password or ""
    if not password:
        return None

    has_upper_case = bool(_UPPER_CASE.search(password))
    has_special_char = bool(_SPECIAL_CHAR.search(password))

    return PasswordAnalysis(
        has_upper_case=has_upper_case,
        has_special_char=has_special_char,
        needs_shift=has_upper_case or has_special_char,
        used_shift_or_caps=request.shift_used > 0 or request.caps_lock_used > 0,
        used_paste=request.paste_pass > 0,
    )


PASSWORD_MISMATCH_RULES = (
    SignalRule(
        "shift_missing",
        lambda s, th: s.needs_shift and not s.used_shift_or_caps and not s.used_paste,
        3, Tag.BOT,
        "Password has uppercase/special chars but no Shift/CapsLock and not pasted",
    ),
)


def detect_password_mismatch(
    request: LoginTelemetry,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_PASSWORD,
) -> List[Flag]:
    """Flag passwords that need Shift but were typed without it."""
    analysis = analyze_password(request)
    if analysis is None:
        return []
    return evaluate_rules(PASSWORD_MISMATCH_RULES, analysis, thresholds, group)


# =============================================================================
# AUTOMATION ENVIRONMENT
# =============================================================================

def _automation_flag(name: str) -> Callable[[LoginTelemetry, ThresholdTable], bool]:
    return lambda s, th: s.automation_flags is not None and getattr(s.automation_flags, name)


WEBDRIVER_RULES = (
    SignalRule(
        "webdriver",
        lambda s, th: s.webdriver_detected,
        5, Tag.BOT,
        "WebDriver automation detected (navigator.webdriver)",
    ),
    SignalRule(
        "chromium_automation", _automation_flag("has_chromium_automation"),
        3, Tag.BOT, "Chromium automation flags detected",
    ),
    SignalRule(
        "selenium", _automation_flag("has_selenium"),
        5, Tag.BOT, "Selenium WebDriver detected",
    ),
    SignalRule(
        "phantom", _automation_flag("has_phantom"),
        5, Tag.BOT, "PhantomJS detected",
    ),
    SignalRule(
        "headless_chrome", _automation_flag("headless_chrome"),
        4, Tag.BOT, "HeadlessChrome detected",
    ),
    # Plugin-less browsers also exist among humans: recorded, not scored
    SignalRule(
        "no_plugins", _automation_flag("no_plugins"),
        0, Tag.BOT, "No browser plugins (possible headless)",
    ),
    SignalRule(
        "zero_window", _automation_flag("zero_window_size"),
        3, Tag.BOT, "Zero window size (headless browser)",
    ),
)


def detect_webdriver(
    request: LoginTelemetry,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_AUTOMATION,
) -> List[Flag]:
    """Flag automation drivers and headless browser probes."""
    return evaluate_rules(WEBDRIVER_RULES, request, thresholds, group)


SYNTHETIC_EVENT_RULES = (
    SignalRule(
        "untrusted_events",
        lambda s, th: s.untrusted_events > 0,
        3, Tag.BOT,
        "Detected {s.untrusted_events} untrusted (synthetic) events",
    ),
    SignalRule(
        "synthetic_keys",
        lambda s, th: s.synthetic_key_ratio > th.anti_bot.synthetic_key_ratio_max,
        4, Tag.BOT,
        "High ratio of synthetic keyboard events ({s.synthetic_key_ratio:.0%})",
    ),
)


def detect_synthetic_events(
    request: LoginTelemetry,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_EVENTS,
) -> List[Flag]:
    """Flag DOM events that were dispatched by script."""
    return evaluate_rules(SYNTHETIC_EVENT_RULES, request, thresholds, group)


# =============================================================================
# FORM INTERACTION
# =============================================================================

TIMING_GAP_RULES = (
    SignalRule(
        "username_to_password",
        lambda s, th: (
            s.username_to_password_ms is not None
            and s.username_to_password_ms < th.timing.user_to_pass_min
        ),
        2, Tag.BOT,
        "Username to password too fast ({s.username_to_password_ms}ms < {th.timing.user_to_pass_min}ms)",
    ),
    SignalRule(
        "password_to_login",
        lambda s, th: (
            s.password_to_login_ms is not None
            and s.password_to_login_ms < th.timing.pass_to_login_min
        ),
        2, Tag.BOT,
        "Password to login too fast ({s.password_to_login_ms}ms < {th.timing.pass_to_login_min}ms)",
    ),
)


def detect_timing_gaps(
    request: LoginTelemetry,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_TIMING,
) -> List[Flag]:
    """Flag form steps completed faster than a person can move between them."""
    return evaluate_rules(TIMING_GAP_RULES, request, thresholds, group)


PASTE_RULES = (
    SignalRule("paste_user", lambda s, th: s.paste_user > 0, 1, Tag.BOT, "Username was pasted"),
    SignalRule("paste_pass", lambda s, th: s.paste_pass > 0, 1, Tag.BOT, "Password was pasted"),
)


def detect_paste(
    request: LoginTelemetry,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_PASTE,
) -> List[Flag]:
    return evaluate_rules(PASTE_RULES, request, thresholds, group)


IME_RULES = (
    SignalRule(
        "ime_composition",
        lambda s, th: s.ime_total > 0,
        3, Tag.HUMAN,
        "IME composition used ({s.ime_total}x)",
    ),
)


def detect_ime(
    request: LoginTelemetry,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_INPUT,
) -> List[Flag]:
    """IME composition across both fields counts once."""
    return evaluate_rules(IME_RULES, request, thresholds, group)


MODIFIER_KEY_RULES = (
    SignalRule("shift", lambda s, th: s.shift_used > 0, 2, Tag.HUMAN, "Shift key used ({s.shift_used}x)"),
    SignalRule("caps_lock", lambda s, th: s.caps_lock_used > 0, 1, Tag.HUMAN, "CapsLock used ({s.caps_lock_used}x)"),
)


def detect_modifier_keys(
    request: LoginTelemetry,
    thresholds: ThresholdTable = DEFAULT_THRESHOLDS,
    group: str = GROUP_INPUT,
) -> List[Flag]:
    return evaluate_rules(MODIFIER_KEY_RULES, request, thresholds, group)


# Every rule table, by detector name
SIGNAL_CATALOG: Dict[str, Sequence[SignalRule]] = {
    "field_typing": FIELD_TYPING_RULES,
    "gaussian_pattern": GAUSSIAN_RULES,
    "trajectory_automation": TRAJECTORY_AUTOMATION_RULES,
    "trajectory_sufficiency": TRAJECTORY_SUFFICIENCY_RULES,
    "password_mismatch": PASSWORD_MISMATCH_RULES,
    "webdriver": WEBDRIVER_RULES,
    "synthetic_events": SYNTHETIC_EVENT_RULES,
    "timing_gaps": TIMING_GAP_RULES,
    "paste": PASTE_RULES,
    "ime": IME_RULES,
    "modifier_keys": MODIFIER_KEY_RULES,
}
