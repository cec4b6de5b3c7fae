import pytest

from rules import RuleParser, parse_rules, parse_rules_file
from rules.actions import AddTag, MarkRead, MoveToFolder, StopExecution
from rules.conditions import Combinator, ConditionGroup, Field, parse_conditions
from rules.errors import (
    FilterRulesError,
    MixedCombinatorError,
    RulesSyntaxError,
    SemanticError,
    UnexpectedKeyError,
    UnsupportedActionError,
    UnsupportedValueError,
    UnsupportedVersionError,
)


SAMPLE_RULES = r'''version="9"
logging="no"
name="Work mail"
enabled="yes"
type="17"
action="Move to folder"
actionValue="mailbox://me@imap.example.com/Work"
action="AddTag"
actionValue="$label1"
condition="AND (from,contains,boss@example.com) AND (subject,contains,\"report\")"
name="Newsletters"
enabled="no"
type="1"
action="Mark read"
action="Stop execution"
condition="OR (subject,contains,newsletter) OR (from,ends with,@news.example.com)"
'''


@pytest.fixture
def ruleset():
    """Parse the sample rules file."""
    return parse_rules(SAMPLE_RULES)


@pytest.fixture
def rules_file(tmpdir):
    """Create a temporary msgFilterRules.dat file."""
    path = tmpdir.join("msgFilterRules.dat")
    path.write(SAMPLE_RULES)
    return str(path)


def test_parse_ruleset(ruleset):
    """Test the header and the rules of the sample file."""
    assert ruleset.version == "9"
    assert ruleset.logging is False
    assert [rule.name for rule in ruleset] == ["Work mail", "Newsletters"]


def test_parse_rule_fields(ruleset):
    """Test flags, actions and conditions of a single rule."""
    rule = ruleset[0]
    assert rule.enabled is True
    assert rule.type == 17
    assert rule.type_names == ["INBOX_RULE", "MANUAL"]
    assert isinstance(rule.actions[0], MoveToFolder)
    assert rule.actions[0].folder.names == ("Work",)
    assert rule.actions[1] == AddTag("$label1")

    conditions = list(rule.conditions)
    assert [c.field for c in conditions] == [Field.FROM, Field.SUBJECT]
    assert conditions[1].search == "report"
    assert rule.conditions.combinator == Combinator.AND


def test_action_without_value(ruleset):
    """An action not followed by actionValue gets no argument."""
    rule = ruleset[1]
    assert rule.enabled is False
    assert rule.actions == (MarkRead(), StopExecution())
    assert rule.conditions.combinator == Combinator.OR


def test_empty_document_has_no_ruleset():
    """Test that an empty file is not an empty rule set."""
    assert parse_rules("") is None
    assert parse_rules("  \r\n\n  ") is None

    empty = parse_rules('version="9"')
    assert empty is not None
    assert len(empty) == 0
    assert str(empty) == "(empty)"


def test_unsupported_version():
    with pytest.raises(UnsupportedVersionError):
        parse_rules('version="8"')


@pytest.mark.parametrize(
    "contents,key,line",
    [
        ('name="First"', "name", 1),
        ('version="9"\nversion="9"', "version", 2),
        ('version="9"\nlogging="yes"\nlogging="no"', "logging", 3),
        ('version="9"\nname="A"\nlogging="yes"', "logging", 3),
        ('version="9"\nenabled="yes"', "enabled", 2),
        ('version="9"\naction="Delete"', "action", 2),
        ('version="9"\nname="A"\nactionValue="x"', "actionValue", 3),
        ('version="9"\nname="A"\ncolor="red"', "color", 3),
    ],
)
def test_unexpected_keys(contents, key, line):
    with pytest.raises(UnexpectedKeyError) as excinfo:
        parse_rules(contents)
    assert excinfo.value.key == key
    assert excinfo.value.line == line


@pytest.mark.parametrize(
    "contents",
    [
        'version="9"\nlogging="maybe"',
        'version="9"\nname="A"\nenabled="true"',
        'version="9"\nname="A"\ntype="-1"',
        'version="9"\nname="A"\ntype="0x10"',
        'version="9"\nname="A"\ntype="512"',
    ],
)
def test_unsupported_values(contents):
    with pytest.raises(UnsupportedValueError):
        parse_rules(contents)


def test_mixed_combinators_across_condition_keys():
    contents = (
        'version="9"\nname="A"\n'
        'condition="AND (from,contains,a)"\n'
        'condition="OR (subject,contains,b)"'
    )
    with pytest.raises(MixedCombinatorError):
        parse_rules(contents)


def test_invalid_condition_aborts_parse():
    with pytest.raises(RulesSyntaxError):
        parse_rules('version="9"\nname="A"\ncondition="AND (from)"')


def test_unknown_action_aborts_parse():
    with pytest.raises(UnsupportedActionError):
        parse_rules('version="9"\nname="A"\naction="Kill thread"')


def test_ruleset_is_frozen_after_parse(ruleset):
    with pytest.raises(SemanticError):
        ruleset[0].add_action(MarkRead())
    with pytest.raises(SemanticError):
        ruleset.add_rule(ruleset[1])
    with pytest.raises(SemanticError):
        ruleset.logging = True

    rule = ruleset[0]
    with pytest.raises(SemanticError):
        rule.name = "Renamed"
    with pytest.raises(SemanticError):
        rule.enabled = False
    with pytest.raises(SemanticError):
        rule.type = 1
    with pytest.raises(SemanticError):
        rule.add_conditions(parse_conditions("AND (subject,contains,x)"))
    with pytest.raises(SemanticError):
        rule.conditions.add(parse_conditions("AND (subject,contains,x)")[0])
    with pytest.raises(AttributeError):
        rule.conditions = ConditionGroup()
    assert rule.name == "Work mail"
    assert rule.enabled
    assert len(rule.conditions) == 2


def test_parse_rules_file(rules_file):
    """Test reading rules from a file."""
    parser = RuleParser.from_file(rules_file)
    assert parser.filename == rules_file
    assert len(parse_rules_file(rules_file)) == 2


def test_parse_missing_file(tmpdir):
    with pytest.raises(FilterRulesError):
        parse_rules_file(str(tmpdir.join("missing.dat")))


def test_rule_description(ruleset):
    text = str(ruleset[0])
    assert text.startswith("Work mail\n - Enabled: true\n - Type: INBOX_RULE, MANUAL")
    assert '  - [and] from contains "boss@example.com"' in text
    assert '  - Move to folder "Work"' in text
