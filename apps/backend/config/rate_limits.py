"""
Pacing profiles for remote generation calls.

Slide text is always generated one request at a time; these profiles only
control the pause between slide requests and the stagger between image
requests. Adjust based on your API tier.
"""

# Gemini free/paid tiers answer bursts with HTTP 429 quickly; retry settings
# apply on top of the pacing below.
RETRY_SETTINGS = {
    "retries": 3,          # Retries after the first attempt
    "initial_delay": 2.0,  # Seconds before the first retry, doubled each time
}

USAGE_PROFILES = {
    "conservative": {
        "delay_between_slides": 2.0,
        "image_stagger": 4.0,
        "description": "Slow and safest on low quotas"
    },
    "balanced": {
        "delay_between_slides": 1.0,
        "image_stagger": 2.0,
        "description": "Default pacing"
    },
    "aggressive": {
        "delay_between_slides": 0.25,
        "image_stagger": 0.5,
        "description": "Fastest, may hit rate limits"
    },
}

DEFAULT_PROFILE = "balanced"


def get_profile(name: str) -> dict:
    """Return the named pacing profile, falling back to the default."""
    return USAGE_PROFILES.get((name or "").lower(), USAGE_PROFILES[DEFAULT_PROFILE])
