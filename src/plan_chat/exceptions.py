"""Custom exception hierarchy for plan chat."""


class PlanChatError(Exception):
    """Base exception for all plan chat errors."""


class ConfigurationError(PlanChatError):
    """Error in system configuration (e.g. missing LLM credentials)."""


class ClassificationError(PlanChatError):
    """Error classifying a question."""


class RetrievalError(PlanChatError):
    """Error during retrieval."""


class EmbeddingError(RetrievalError):
    """Error generating embeddings."""


class GenerationError(PlanChatError):
    """Error during answer generation."""


class PlanIndexingError(PlanChatError):
    """Error (re)building the text index for a plan."""


class StorageError(PlanChatError):
    """Error reading or writing persisted records."""


class ModificationError(PlanChatError):
    """Error applying takeoff modifications."""
