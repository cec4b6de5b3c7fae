"""Rules package: read msgFilterRules.dat documents and compile them to Gmail filters."""

from rules.compiler import RuleCompiler, compile_action, compile_rule
from rules.models import Rule, RuleSet
from rules.parser import RuleParser, parse_rules, parse_rules_file

__all__ = [
    "RuleCompiler",
    "RuleParser",
    "Rule",
    "RuleSet",
    "compile_action",
    "compile_rule",
    "parse_rules",
    "parse_rules_file",
]
