from typing import Optional


class FilterRulesError(Exception):
    """Base class for every error raised while reading or compiling filter rules."""


class RulesSyntaxError(FilterRulesError):
    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line


class SemanticError(FilterRulesError):
    pass


class UnexpectedKeyError(SemanticError):
    def __init__(self, key: str, line: int):
        super().__init__(f"Unexpected '{key}' key at line {line}")
        self.key = key
        self.line = line


class UnsupportedVersionError(SemanticError):
    def __init__(self, version: str):
        super().__init__(f"Unsupported format version ({version}) detected")
        self.version = version


class UnsupportedValueError(SemanticError):
    def __init__(self, key: str, value: str, line: int):
        super().__init__(
            f"Unsupported value for the key '{key}' found at line {line}: '{value}'"
        )
        self.key = key
        self.value = value
        self.line = line


class UnsupportedTypeError(SemanticError):
    def __init__(self, value: int):
        super().__init__(f"Type bitmask {value} can't be represented by known flags")
        self.value = value


class MixedCombinatorError(SemanticError):
    def __init__(self):
        super().__init__("Mixed AND/OR conditions are not supported")


class ActionValidationError(FilterRulesError):
    pass


class UnsupportedActionError(ActionValidationError):
    def __init__(self, name: str):
        super().__init__(f"Unrecognized action: {name}")
        self.name = name


class MissingArgumentError(ActionValidationError):
    pass


class UnexpectedArgumentError(ActionValidationError):
    pass


class InvalidRecipientError(ActionValidationError):
    pass


class InvalidFolderError(ActionValidationError):
    pass


class InvalidScoreError(ActionValidationError):
    pass


class FilterNotCompilableError(FilterRulesError):
    """A single rule can't be turned into a Gmail filter.

    The batch compiler attaches the offending rule and moves on to the next one.
    """

    def __init__(self, message: str, rule=None):
        super().__init__(message)
        self.message = message
        self.rule = rule

    def with_rule(self, rule) -> "FilterNotCompilableError":
        if self.rule is None:
            self.rule = rule
        return self

    def __str__(self) -> str:
        if self.rule is None:
            return self.message
        return f"{self.message}\n{self.rule}"


class NotImplementedFilterError(FilterNotCompilableError):
    pass


class InvalidDateError(FilterNotCompilableError):
    pass


class AtMostOneForwardError(FilterNotCompilableError):
    def __init__(self, rule=None):
        super().__init__(
            'Only one "forward to" action is supported by Gmail filters', rule
        )


class UnsupportedJunkScoreError(FilterNotCompilableError):
    def __init__(self, score: int, rule=None):
        super().__init__(f"Unsupported junk score: {score}", rule)
        self.score = score


class FilterAlreadyExistsError(FilterNotCompilableError):
    pass


class UnrecognizedForwardingAddressError(FilterNotCompilableError):
    def __init__(self, message: str, forwarding_address: Optional[str] = None, rule=None):
        super().__init__(message, rule)
        self.forwarding_address = forwarding_address

    def __str__(self) -> str:
        result = super().__str__()
        if self.forwarding_address is not None:
            result += f"\nForwarding address: {self.forwarding_address}"
        return result
