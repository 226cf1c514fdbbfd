"""Fixed constants shared across the pipeline."""

SUMMARY_TURN_MARKER = "[Previous conversation summary]"

MIN_ANSWER_LENGTH = 5

SUMMARY_FALLBACK_USER_CHARS = 100
SUMMARY_FALLBACK_ASSISTANT_CHARS = 150

TITLE_MAX_LENGTH = 60
TITLE_FALLBACK_LENGTH = 50
GENERIC_CHAT_TITLES = frozenset({"New Chat", "Untitled Chat"})

MAX_QUANTITY_CATEGORIES = 10
MAX_COST_CATEGORIES = 10

OVERVIEW_KEYWORDS = (
    "overview",
    "summary",
    "summarize",
    "all items",
    "all the items",
    "everything",
    "entire takeoff",
    "whole takeoff",
    "full takeoff",
    "breakdown",
)

# Common trade categories checked by the missing-scope analysis
STANDARD_CATEGORIES = (
    "concrete",
    "steel",
    "framing",
    "drywall",
    "roofing",
    "electrical",
    "plumbing",
    "hvac",
    "insulation",
    "windows",
    "doors",
    "finishes",
    "exterior",
    "sitework",
)

SMALL_NUMBER_WORDS = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

# Reasoning models that reject any temperature other than their default
NO_CUSTOM_TEMPERATURE_MODELS = frozenset(
    {"gpt-5", "gpt-5-mini", "gpt-5-nano", "o1", "o1-mini", "o3", "o3-mini", "o4-mini"}
)
