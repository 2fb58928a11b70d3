# CCGLM Profiles
# Profile classification and the env merge between Claude Code and Z.AI GLM

import copy
import re
from collections.abc import Callable
from enum import Enum
from typing import Any, Optional

from ccglm.errors import InvalidJsonError, InvalidTokenError, MissingSecretsError
from ccglm.store import SettingsDocument


class Profile(str, Enum):
    """Which backend the settings document points the client at."""

    DEFAULT = "cc"
    ALTERNATE = "glm"

    @property
    def label(self) -> str:
        """Human-readable backend name."""
        return PROFILE_LABELS[self]


PROFILE_LABELS = {
    Profile.DEFAULT: "Claude Code",
    Profile.ALTERNATE: "Z.AI GLM",
}

ENV_KEY = "env"

# Alternate-profile env keys
AUTH_TOKEN_KEY = "ANTHROPIC_AUTH_TOKEN"
BASE_URL_KEY = "ANTHROPIC_BASE_URL"
TIMEOUT_KEY = "API_TIMEOUT_MS"
HAIKU_MODEL_KEY = "ANTHROPIC_DEFAULT_HAIKU_MODEL"
SONNET_MODEL_KEY = "ANTHROPIC_DEFAULT_SONNET_MODEL"
OPUS_MODEL_KEY = "ANTHROPIC_DEFAULT_OPUS_MODEL"
PROVIDER_KEY = "CLAUDE_MODEL_PROVIDER"
MODEL_MAPPING_KEY = "GLM_MODEL_MAPPING"

PROFILE_KEYS: tuple[str, ...] = (
    AUTH_TOKEN_KEY,
    BASE_URL_KEY,
    TIMEOUT_KEY,
    HAIKU_MODEL_KEY,
    SONNET_MODEL_KEY,
    OPUS_MODEL_KEY,
    PROVIDER_KEY,
    MODEL_MAPPING_KEY,
)

# Z.AI endpoint and model tiers
GLM_BASE_URL = "https://api.z.ai/api/anthropic"
GLM_TIMEOUT_MS = "3000000"
GLM_HAIKU_MODEL = "glm-4.5-air"
GLM_SONNET_MODEL = "glm-4.6"
GLM_OPUS_MODEL = "glm-4.6"
GLM_PROVIDER = "zhipu"
GLM_BASE_URL_MARKER = "z.ai"
GLM_MODEL_MAPPING = f"haiku:{GLM_HAIKU_MODEL},sonnet:{GLM_SONNET_MODEL},opus:{GLM_OPUS_MODEL}"

_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9._-]+")


def _env_of(doc: SettingsDocument) -> dict[str, Any]:
    """Return the env mapping of ``doc``, or an empty dict if absent or not an object."""
    env = doc.get(ENV_KEY)
    return env if isinstance(env, dict) else {}


def _has_glm_provider(env: dict[str, Any]) -> bool:
    return env.get(PROVIDER_KEY) == GLM_PROVIDER


def _has_glm_base_url(env: dict[str, Any]) -> bool:
    base_url = env.get(BASE_URL_KEY)
    return isinstance(base_url, str) and GLM_BASE_URL_MARKER in base_url


def _has_glm_model_mapping(env: dict[str, Any]) -> bool:
    return MODEL_MAPPING_KEY in env


# Ordered from most to least specific; first match wins.
CLASSIFIER_RULES: tuple[tuple[str, Callable[[dict[str, Any]], bool]], ...] = (
    ("provider tag", _has_glm_provider),
    ("base URL", _has_glm_base_url),
    ("model mapping", _has_glm_model_mapping),
)


def classify(doc: Optional[SettingsDocument]) -> Profile:
    """
    Determine which profile a settings document represents.

    Args:
        doc: Parsed settings, or None for a missing/empty file.

    Returns:
        Profile.ALTERNATE if any rule matches, else Profile.DEFAULT.
    """
    return classify_with_reason(doc)[0]


def classify_with_reason(doc: Optional[SettingsDocument]) -> tuple[Profile, Optional[str]]:
    """Like :func:`classify`, also naming the rule that matched."""
    if not doc:
        return Profile.DEFAULT, None

    env = _env_of(doc)
    for name, rule in CLASSIFIER_RULES:
        if rule(env):
            return Profile.ALTERNATE, name
    return Profile.DEFAULT, None


def _drop_empty_env(doc: SettingsDocument) -> SettingsDocument:
    if isinstance(doc.get(ENV_KEY), dict) and not doc[ENV_KEY]:
        del doc[ENV_KEY]
    return doc


def compute_clean_baseline(doc: SettingsDocument) -> SettingsDocument:
    """
    Strip every Alternate-profile key from ``doc``.

    Keys outside PROFILE_KEYS are untouched. ``env`` is removed entirely
    when nothing else is left in it. The input is not modified.

    Args:
        doc: Settings document.

    Returns:
        New document without profile keys.
    """
    result = copy.deepcopy(doc)
    env = result.get(ENV_KEY)
    if not isinstance(env, dict):
        return result

    for key in PROFILE_KEYS:
        env.pop(key, None)
    return _drop_empty_env(result)


def build_profile_env(auth_token: str) -> dict[str, str]:
    """
    Build the Alternate-profile env block.

    Args:
        auth_token: Z.AI API token.

    Returns:
        Mapping of all PROFILE_KEYS to their values.
    """
    return {
        AUTH_TOKEN_KEY: auth_token,
        BASE_URL_KEY: GLM_BASE_URL,
        TIMEOUT_KEY: GLM_TIMEOUT_MS,
        HAIKU_MODEL_KEY: GLM_HAIKU_MODEL,
        SONNET_MODEL_KEY: GLM_SONNET_MODEL,
        OPUS_MODEL_KEY: GLM_OPUS_MODEL,
        PROVIDER_KEY: GLM_PROVIDER,
        MODEL_MAPPING_KEY: GLM_MODEL_MAPPING,
    }


def compute_target_document(
    baseline: SettingsDocument,
    profile: Profile,
    auth_token: Optional[str] = None,
) -> SettingsDocument:
    """
    Produce the settings document for ``profile``.

    For the default profile this is the baseline itself. For the alternate
    profile the existing env keys are kept and the profile keys are added
    or overwritten.

    Args:
        baseline: Clean baseline document.
        profile: Target profile.
        auth_token: Token for the alternate profile.

    Returns:
        New target document. The baseline is not modified.

    Raises:
        MissingSecretsError: If the alternate profile is requested without a token.
        InvalidTokenError: If the token has an invalid format.
        InvalidJsonError: If the baseline's env is not an object.
    """
    result = copy.deepcopy(baseline)

    if profile == Profile.DEFAULT:
        return _drop_empty_env(result)

    if auth_token is None:
        raise MissingSecretsError("ZAI_AUTH_TOKEN is required for the glm profile")
    validate_auth_token(auth_token)

    env = result.get(ENV_KEY, {})
    if not isinstance(env, dict):
        raise InvalidJsonError(f"'{ENV_KEY}' in settings must be a JSON object, got {type(env).__name__}")

    result[ENV_KEY] = {**env, **build_profile_env(auth_token)}
    return result


def validate_auth_token(token: str) -> None:
    """
    Check the token's format (not its authenticity).

    Raises:
        MissingSecretsError: If the token is empty.
        InvalidTokenError: If it contains characters outside [A-Za-z0-9._-].
    """
    if not token:
        raise MissingSecretsError(
            "ZAI_AUTH_TOKEN is empty",
            hint="Add ZAI_AUTH_TOKEN=<your token> to your .env file.",
        )
    if not _TOKEN_PATTERN.fullmatch(token):
        raise InvalidTokenError(
            "ZAI_AUTH_TOKEN has an invalid format",
            hint="Tokens may only contain letters, digits, '.', '_' and '-'. Check for quotes or spaces in .env.",
        )


def env_changes(before: SettingsDocument, after: SettingsDocument) -> tuple[list[str], list[str], list[str]]:
    """
    Compare the env blocks of two documents.

    Returns:
        Tuple of (added, removed, changed) key names, each sorted.
    """
    old_env = _env_of(before)
    new_env = _env_of(after)

    added = sorted(k for k in new_env if k not in old_env)
    removed = sorted(k for k in old_env if k not in new_env)
    changed = sorted(k for k in new_env if k in old_env and new_env[k] != old_env[k])
    return added, removed, changed


def mask_token(token: str) -> str:
    """Mask all but the last four characters of a token."""
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * (len(token) - 4) + token[-4:]


def describe(doc: Optional[SettingsDocument]) -> dict[str, str]:
    """
    Summarize a settings document for display.

    Returns:
        Ordered mapping of label to value.
    """
    profile, reason = classify_with_reason(doc)
    summary = {"Profile": f"{profile.value} ({profile.label})"}
    if reason:
        summary["Detected by"] = reason

    env = _env_of(doc or {})
    if profile == Profile.ALTERNATE:
        summary["Base URL"] = str(env.get(BASE_URL_KEY, "-"))
        summary["Haiku model"] = str(env.get(HAIKU_MODEL_KEY, "-"))
        summary["Sonnet model"] = str(env.get(SONNET_MODEL_KEY, "-"))
        summary["Opus model"] = str(env.get(OPUS_MODEL_KEY, "-"))
        token = env.get(AUTH_TOKEN_KEY)
        summary["Auth token"] = mask_token(token) if isinstance(token, str) else "-"

    custom = [k for k in env if k not in PROFILE_KEYS]
    summary["Custom env keys"] = ", ".join(custom) if custom else "none"
    return summary


def redact(doc: SettingsDocument) -> SettingsDocument:
    """Return a copy of ``doc`` with the auth token masked for display."""
    result = copy.deepcopy(doc)
    env = result.get(ENV_KEY)
    if isinstance(env, dict) and isinstance(env.get(AUTH_TOKEN_KEY), str):
        env[AUTH_TOKEN_KEY] = mask_token(env[AUTH_TOKEN_KEY])
    return result
