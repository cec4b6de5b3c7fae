import os
import re
from enum import Enum
from typing import List, Optional

from logger import logger
from rules.actions import create_action
from rules.conditions import parse_conditions
from rules.errors import (
    FilterRulesError,
    UnexpectedKeyError,
    UnsupportedTypeError,
    UnsupportedValueError,
    UnsupportedVersionError,
)
from rules.flags import decompose
from rules.models import Rule, RuleSet
from rules.tokenizer import Token, tokenize


SUPPORTED_VERSION = "9"
BOOLEAN_VALUES = {"yes": True, "no": False}
TYPE_PATTERN = re.compile(r"^[0-9]+$")


class ParserState(Enum):
    AWAIT_VERSION = "await_version"
    AWAIT_RULE = "await_rule"
    IN_RULE = "in_rule"


class RuleParser:
    """Assemble the tokens of a msgFilterRules.dat document into a RuleSet."""

    def __init__(self, contents: str, filename: str = ""):
        self.contents = contents
        self.filename = filename

    @classmethod
    def from_file(cls, filename: str) -> "RuleParser":
        if not os.path.isfile(filename):
            raise FilterRulesError(f"Unable to find the file {filename}")
        try:
            with open(filename, "r", encoding="utf-8") as f:
                contents = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise FilterRulesError(f"Failed to read the file {filename}: {e}") from e
        return cls(contents, filename)

    def parse(self) -> Optional[RuleSet]:
        """Returns None when the document holds no tokens at all."""
        tokens = tokenize(self.contents)
        if not tokens:
            return None

        self._tokens: List[Token] = tokens
        self._ruleset: Optional[RuleSet] = None
        self._rule: Optional[Rule] = None
        self._state = ParserState.AWAIT_VERSION

        index = 0
        while index < len(tokens):
            index = self._consume(index)

        self._ruleset.freeze()
        logger.info(
            f"Parsed {len(self._ruleset)} rules"
            + (f" from {self.filename}" if self.filename else "")
        )
        return self._ruleset

    def _consume(self, index: int) -> int:
        """Handle the token at ``index`` and return the index of the next one."""
        token = self._tokens[index]
        key = token.key

        if key == "version":
            self._expect(token, ParserState.AWAIT_VERSION)
            if token.value != SUPPORTED_VERSION:
                raise UnsupportedVersionError(token.value)
            self._ruleset = RuleSet(token.value)
            self._state = ParserState.AWAIT_RULE
        elif key == "logging":
            self._expect(token, ParserState.AWAIT_RULE)
            if self._ruleset.logging is not None:
                raise UnexpectedKeyError(key, token.line)
            self._ruleset.logging = self._boolean(token)
        elif key == "name":
            if self._state == ParserState.AWAIT_VERSION:
                raise UnexpectedKeyError(key, token.line)
            self._rule = Rule(token.value)
            self._ruleset.add_rule(self._rule)
            self._state = ParserState.IN_RULE
            logger.debug(f"Reading rule '{token.value}' at line {token.line}")
        elif key == "enabled":
            self._expect(token, ParserState.IN_RULE)
            self._rule.enabled = self._boolean(token)
        elif key == "type":
            self._expect(token, ParserState.IN_RULE)
            self._rule.type = self._type(token)
        elif key == "action":
            self._expect(token, ParserState.IN_RULE)
            value = None
            following = self._tokens[index + 1] if index + 1 < len(self._tokens) else None
            if following is not None and following.key == "actionValue":
                value = following.value
                index += 1
            self._rule.add_action(create_action(token.value, value))
        elif key == "condition":
            self._expect(token, ParserState.IN_RULE)
            self._rule.add_conditions(parse_conditions(token.value))
        else:
            raise UnexpectedKeyError(key, token.line)

        return index + 1

    def _expect(self, token: Token, state: ParserState):
        if self._state != state:
            raise UnexpectedKeyError(token.key, token.line)

    @staticmethod
    def _boolean(token: Token) -> bool:
        if token.value not in BOOLEAN_VALUES:
            raise UnsupportedValueError(token.key, token.value, token.line)
        return BOOLEAN_VALUES[token.value]

    @staticmethod
    def _type(token: Token) -> int:
        if not TYPE_PATTERN.match(token.value):
            raise UnsupportedValueError(token.key, token.value, token.line)
        value = int(token.value)
        try:
            decompose(value)
        except UnsupportedTypeError as e:
            raise UnsupportedValueError(token.key, token.value, token.line) from e
        return value


def parse_rules(contents: str) -> Optional[RuleSet]:
    return RuleParser(contents).parse()


def parse_rules_file(filename: str) -> Optional[RuleSet]:
    return RuleParser.from_file(filename).parse()
