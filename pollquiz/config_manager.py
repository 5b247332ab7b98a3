"""
Configuration manager for quiz bot settings and question limits.
"""
import dataclasses
import logging
from typing import Any, Dict, List, Optional

from .models import QuestionLimits, QuestionSource, QuizSettings, VoteMode


class ConfigManager:
    """Manages bot configuration settings and question validation bounds."""

    # Validation limits
    MIN_CHOICES = 2
    MAX_CHOICES = 10
    MIN_TIME_LIMIT = 5
    MAX_TIME_LIMIT = 600  # 10 minutes
    MAX_FETCH_BYTES = 64 * 1024
    MAX_PREFIX_LENGTH = 5

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            Copy of the current QuizSettings
        """
        return dataclasses.replace(self._settings)

    def get_question_limits(self) -> QuestionLimits:
        return self._settings.limits()

    def apply_config(self, config: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Apply settings from a parsed config.json document.

        Invalid values are logged and skipped so the defaults stay in effect.

        Args:
            config: Parsed configuration with optional 'bot', 'quiz' and 'fetch' sections

        Returns:
            The failed setter results, empty if everything applied
        """
        bot_config = config.get('bot', {})
        quiz_config = config.get('quiz', {})
        fetch_config = config.get('fetch', {})

        results = []
        if 'command_prefix' in bot_config:
            results.append(self.set_command_prefix(bot_config['command_prefix']))
        if 'max_choices' in quiz_config:
            results.append(self.set_max_choices(quiz_config['max_choices']))
        if 'min_time_limit' in quiz_config or 'max_time_limit' in quiz_config:
            results.append(self.set_time_limit_bounds(
                quiz_config.get('min_time_limit', self._settings.min_time_limit),
                quiz_config.get('max_time_limit', self._settings.max_time_limit)
            ))
        if 'default_time_limit' in quiz_config:
            results.append(self.set_default_time_limit(quiz_config['default_time_limit']))
        if 'vote_mode' in quiz_config:
            results.append(self.set_vote_mode(quiz_config['vote_mode']))
        if 'question_source' in quiz_config:
            results.append(self.set_question_source(quiz_config['question_source']))
        if 'max_content_length' in fetch_config:
            results.append(self.set_max_content_length(fetch_config['max_content_length']))
        if 'trusted_urls_only' in fetch_config:
            results.append(self.set_trusted_urls_only(fetch_config['trusted_urls_only']))

        failures = [result for result in results if not result['success']]
        if failures:
            self.logger.warning(f"{len(failures)} configuration values were rejected, defaults kept")
        else:
            self.logger.info("Configuration applied successfully")
        return failures

    def set_command_prefix(self, prefix: str) -> Dict[str, Any]:
        """
        Set the prefix that marks a message as a bot command.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(prefix, str):
            return self._failure(
                f"Command prefix must be a string, got {type(prefix).__name__}",
                f"❌ Invalid input: Expected text, got {type(prefix).__name__}"
            )
        if not prefix.strip() or prefix != prefix.strip():
            return self._failure(
                "Command prefix cannot be empty or contain surrounding whitespace",
                "❌ Command prefix cannot be blank"
            )
        if len(prefix) > self.MAX_PREFIX_LENGTH:
            return self._failure(
                f"Command prefix cannot exceed {self.MAX_PREFIX_LENGTH} characters",
                f"❌ Prefix too long: Maximum is {self.MAX_PREFIX_LENGTH} characters"
            )

        self._settings.command_prefix = prefix
        return self._success(f"Command prefix set to {prefix}", f"✅ Commands now start with `{prefix}`")

    def set_max_choices(self, count: int) -> Dict[str, Any]:
        """
        Set the largest number of choices a question may have.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not _is_int(count):
            return self._failure(
                f"Max choices must be an integer, got {type(count).__name__}",
                f"❌ Invalid input: Expected a number, got {type(count).__name__}"
            )
        if not self.MIN_CHOICES <= count <= self.MAX_CHOICES:
            return self._failure(
                f"Max choices must be between {self.MIN_CHOICES} and {self.MAX_CHOICES}",
                f"❌ Choice limit must be between {self.MIN_CHOICES} and {self.MAX_CHOICES}"
            )

        self._settings.max_choices = count
        return self._success(f"Max choices set to {count}", f"✅ Questions may have up to {count} choices")

    def set_time_limit_bounds(self, minimum: int, maximum: int) -> Dict[str, Any]:
        """
        Set the accepted range of question time limits, in seconds.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not _is_int(minimum) or not _is_int(maximum):
            return self._failure(
                "Time limit bounds must be integers",
                "❌ Invalid input: Time limits must be whole seconds"
            )
        if minimum < self.MIN_TIME_LIMIT or maximum > self.MAX_TIME_LIMIT:
            return self._failure(
                f"Time limit bounds must lie within {self.MIN_TIME_LIMIT}..{self.MAX_TIME_LIMIT} seconds",
                f"❌ Time limits must be between {self.MIN_TIME_LIMIT} and {self.MAX_TIME_LIMIT} seconds"
            )
        if minimum > maximum:
            return self._failure(
                f"Minimum time limit {minimum} exceeds maximum {maximum}",
                "❌ Minimum time limit cannot be larger than the maximum"
            )

        self._settings.min_time_limit = minimum
        self._settings.max_time_limit = maximum
        # Keep the text-mode default inside the new bounds
        self._settings.default_time_limit = min(max(self._settings.default_time_limit, minimum), maximum)
        return self._success(
            f"Time limit bounds set to {minimum}..{maximum} seconds",
            f"✅ Questions may run from {minimum} to {maximum} seconds"
        )

    def set_default_time_limit(self, seconds: int) -> Dict[str, Any]:
        """
        Set the time limit used for questions that do not specify one.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not _is_int(seconds):
            return self._failure(
                f"Default time limit must be an integer, got {type(seconds).__name__}",
                f"❌ Invalid input: Expected a number, got {type(seconds).__name__}"
            )
        if not self._settings.min_time_limit <= seconds <= self._settings.max_time_limit:
            return self._failure(
                f"Default time limit must be between {self._settings.min_time_limit} "
                f"and {self._settings.max_time_limit} seconds",
                f"❌ Default time limit must be between {self._settings.min_time_limit} "
                f"and {self._settings.max_time_limit} seconds"
            )

        self._settings.default_time_limit = seconds
        return self._success(f"Default time limit set to {seconds} seconds", f"✅ Default timer set to {seconds} seconds")

    def set_vote_mode(self, mode: str) -> Dict[str, Any]:
        """
        Choose how repeated votes from one voter are recorded.

        Args:
            mode: 'accumulate' (first vote counts) or 'replace' (last vote counts)

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            vote_mode = mode if isinstance(mode, VoteMode) else VoteMode(mode)
        except ValueError:
            options = ", ".join(m.value for m in VoteMode)
            return self._failure(f"Unknown vote mode: {mode!r}", f"❌ Vote mode must be one of: {options}")

        self._settings.vote_mode = vote_mode
        return self._success(f"Vote mode set to {vote_mode.value}", f"✅ Vote mode set to {vote_mode.value}")

    def set_question_source(self, source: str) -> Dict[str, Any]:
        """
        Choose whether `create` reads a URL or inline question text.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            question_source = source if isinstance(source, QuestionSource) else QuestionSource(source)
        except ValueError:
            options = ", ".join(s.value for s in QuestionSource)
            return self._failure(f"Unknown question source: {source!r}", f"❌ Question source must be one of: {options}")

        self._settings.question_source = question_source
        return self._success(
            f"Question source set to {question_source.value}",
            f"✅ Quizzes are now created from {question_source.value}"
        )

    def set_max_content_length(self, length: int) -> Dict[str, Any]:
        """
        Set the largest question document accepted from a URL, in bytes.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not _is_int(length):
            return self._failure(
                f"Max content length must be an integer, got {type(length).__name__}",
                f"❌ Invalid input: Expected a number, got {type(length).__name__}"
            )
        if not 1 <= length <= self.MAX_FETCH_BYTES:
            return self._failure(
                f"Max content length must be between 1 and {self.MAX_FETCH_BYTES} bytes",
                f"❌ Size limit must be between 1 and {self.MAX_FETCH_BYTES} bytes"
            )

        self._settings.max_content_length = length
        return self._success(f"Max content length set to {length} bytes", f"✅ Question files may be up to {length} bytes")

    def set_trusted_urls_only(self, enabled: bool) -> Dict[str, Any]:
        """
        Restrict question URLs to Discord attachment links.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(enabled, bool):
            return self._failure(
                f"Trusted URLs setting must be a boolean, got {type(enabled).__name__}",
                f"❌ Invalid input: Expected true/false, got {type(enabled).__name__}"
            )

        self._settings.trusted_urls_only = enabled
        state = "only Discord attachments" if enabled else "any URL"
        return self._success(f"Trusted URLs only set to {enabled}", f"✅ Quizzes may be loaded from {state}")

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings()
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }
        settings = self._settings

        if not self.MIN_CHOICES <= settings.max_choices <= self.MAX_CHOICES:
            validation_result["issues"].append(f"Invalid max choices: {settings.max_choices}")

        if not (self.MIN_TIME_LIMIT <= settings.min_time_limit
                <= settings.default_time_limit
                <= settings.max_time_limit <= self.MAX_TIME_LIMIT):
            validation_result["issues"].append(
                f"Invalid time limits: {settings.min_time_limit}..{settings.max_time_limit} "
                f"(default {settings.default_time_limit})"
            )

        if not isinstance(settings.vote_mode, VoteMode):
            validation_result["issues"].append(f"Invalid vote mode: {settings.vote_mode}")

        if not isinstance(settings.question_source, QuestionSource):
            validation_result["issues"].append(f"Invalid question source: {settings.question_source}")

        validation_result["valid"] = not validation_result["issues"]
        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        settings = self._settings
        return (
            f"Quiz Settings:\n"
            f"• Prefix: {settings.command_prefix}\n"
            f"• Choices: 2 to {settings.max_choices}\n"
            f"• Time limit: {settings.min_time_limit} to {settings.max_time_limit} seconds "
            f"(default {settings.default_time_limit})\n"
            f"• Vote mode: {settings.vote_mode.value}\n"
            f"• Question source: {settings.question_source.value}\n"
            f"• Trusted URLs only: {'yes' if settings.trusted_urls_only else 'no'}"
        )

    def _success(self, message: str, user_message: str) -> Dict[str, Any]:
        self.logger.info(message)
        return {
            'success': True,
            'message': message,
            'user_message': user_message
        }

    def _failure(self, error_msg: str, user_message: str) -> Dict[str, Any]:
        self.logger.error(error_msg)
        return {
            'success': False,
            'error': error_msg,
            'user_message': user_message
        }


def _is_int(value: Optional[Any]) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
