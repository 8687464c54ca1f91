from .llm_backoff import invoke_with_retry, is_retryable_error, describe_api_error

__all__ = ["invoke_with_retry", "is_retryable_error", "describe_api_error"]
