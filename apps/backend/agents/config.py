"""
Configuration settings for the agents package.
"""

import os

from dotenv import load_dotenv

from config.rate_limits import RETRY_SETTINGS, get_profile

load_dotenv()

#==============================================================================
# GENERATION MODELS
#==============================================================================

OUTLINE_MODEL = os.getenv('OUTLINE_MODEL', 'gemini-2.5-flash')
SLIDE_CONTENT_MODEL = os.getenv('SLIDE_CONTENT_MODEL', 'gemini-2.5-flash')
IMAGE_MODEL = os.getenv('IMAGE_MODEL', 'gemini-2.5-flash-image')

OUTLINE_SYSTEM_INSTRUCTION = "You are an expert presentation designer."

#==============================================================================
# RETRY & PACING CONFIGURATION
#==============================================================================

PACING_PROFILE = os.getenv('PACING_PROFILE', 'balanced')
_profile = get_profile(PACING_PROFILE)

RETRY_ATTEMPTS = int(os.getenv('RETRY_ATTEMPTS', str(RETRY_SETTINGS['retries'])))
RETRY_INITIAL_DELAY = float(os.getenv('RETRY_INITIAL_DELAY', str(RETRY_SETTINGS['initial_delay'])))

# Pause before each slide request after the first one
DELAY_BETWEEN_SLIDES = float(os.getenv('DELAY_BETWEEN_SLIDES', str(_profile['delay_between_slides'])))

# Image request N waits N * IMAGE_STAGGER_SECONDS before firing
IMAGE_STAGGER_SECONDS = float(os.getenv('IMAGE_STAGGER_SECONDS', str(_profile['image_stagger'])))

# Timeouts (seconds) for a single remote call, retries excluded
AI_CALL_TIMEOUT = float(os.getenv('AI_CALL_TIMEOUT', '90'))
IMAGE_CALL_TIMEOUT = float(os.getenv('IMAGE_CALL_TIMEOUT', '120'))

#==============================================================================
# OUTLINE CONFIGURATION
#==============================================================================

# "local": deterministic pagination; "model": remote segmentation checked verbatim
DOCUMENT_OUTLINE_STRATEGY = os.getenv('DOCUMENT_OUTLINE_STRATEGY', 'local').lower()

PAGINATION_WORD_LIMIT = int(os.getenv('PAGINATION_WORD_LIMIT', '150'))
LARGE_CODE_BLOCK_LINES = int(os.getenv('LARGE_CODE_BLOCK_LINES', '15'))
HUGE_CODE_BLOCK_LINES = int(os.getenv('HUGE_CODE_BLOCK_LINES', '40'))

TOPIC_OUTLINE_MIN_ITEMS = 5
TOPIC_OUTLINE_MAX_ITEMS = 8

DEFAULT_DOCUMENT_TITLE = "Document"
DEFAULT_DECK_TITLE = "Untitled Presentation"

#==============================================================================
# IMAGES & INPUT
#==============================================================================

IMAGE_GENERATION_ENABLED = os.getenv('IMAGE_GENERATION_ENABLED', 'true').lower() == 'true'
MAX_DOCUMENT_BYTES = int(os.getenv('MAX_DOCUMENT_BYTES', str(5 * 1024 * 1024)))
DEFAULT_THEME = os.getenv('DEFAULT_THEME', 'light')


def get_api_key():
    """Gemini API key from the environment, if any."""
    return os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
