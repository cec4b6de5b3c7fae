from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from config import (
    DEFAULT_TAG_NAMES,
    IMPORTANT_LABEL,
    IMPORTANT_TAG,
    INBOX_LABEL,
    SPAM_LABEL,
    TRASH_LABEL,
    UNREAD_LABEL,
)
from logger import logger
from rules.actions import (
    AddTag,
    CopyToFolder,
    Delete,
    Forward,
    JunkScore,
    MarkFlagged,
    MarkRead,
    MoveToFolder,
    Reply,
    StopExecution,
)
from rules.errors import (
    AtMostOneForwardError,
    FilterNotCompilableError,
    NotImplementedFilterError,
    UnsupportedJunkScoreError,
)
from rules.models import Rule


@dataclass
class FilterCriteria:
    query: str

    def to_dict(self) -> Dict[str, str]:
        return {"query": self.query}


@dataclass
class FilterAction:
    add_label_ids: List[str] = field(default_factory=list)
    remove_label_ids: List[str] = field(default_factory=list)
    forward: Optional[str] = None

    def to_dict(self) -> Dict:
        body = {}
        if self.add_label_ids:
            body["addLabelIds"] = list(self.add_label_ids)
        if self.remove_label_ids:
            body["removeLabelIds"] = list(self.remove_label_ids)
        if self.forward:
            body["forward"] = self.forward
        return body


@dataclass
class CompiledFilter:
    rule: Rule
    criteria: FilterCriteria
    action: FilterAction

    def to_dict(self) -> Dict:
        """Request body for the Gmail users.settings.filters.create call."""
        return {"criteria": self.criteria.to_dict(), "action": self.action.to_dict()}


def _unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def compile_criteria(rule: Rule) -> FilterCriteria:
    if rule.conditions.is_empty():
        raise NotImplementedFilterError("Rules without conditions are not supported")
    return FilterCriteria(rule.conditions.to_query())


def compile_action(
    rule: Rule, label_directory, tag_names: Optional[Dict[str, str]] = None
) -> FilterAction:
    """Turn the actions of ``rule`` into Gmail label changes.

    ``label_directory`` resolves label paths to ids (see
    services.gmail_service.LabelDirectory). Folder actions and plain
    tags don't mix: once a rule routes to a folder its tags are dropped,
    except for the important tag which maps to Gmail's own label.
    """
    if tag_names is None:
        tag_names = DEFAULT_TAG_NAMES
    result = FilterAction()
    add_labels = []
    remove_labels = []
    can_add_tags = True

    for action in rule.actions:
        if isinstance(action, AddTag):
            continue
        if isinstance(action, (CopyToFolder, MoveToFolder)):
            add_labels.append(label_directory.get_or_create(action.folder.path))
            can_add_tags = False
            if isinstance(action, MoveToFolder):
                remove_labels.append(INBOX_LABEL)
        elif isinstance(action, Delete):
            add_labels.append(TRASH_LABEL)
        elif isinstance(action, Forward):
            if result.forward:
                raise AtMostOneForwardError(rule)
            result.forward = action.recipient
        elif isinstance(action, JunkScore):
            if action.score == 0:
                remove_labels.append(SPAM_LABEL)
            elif action.score == 100:
                add_labels.append(SPAM_LABEL)
            else:
                raise UnsupportedJunkScoreError(action.score, rule)
        elif isinstance(action, MarkRead):
            remove_labels.append(UNREAD_LABEL)
        elif isinstance(action, (StopExecution, MarkFlagged, Reply)):
            logger.info(f"Rule '{rule.name}': '{action}' has no Gmail filter equivalent, skipped")
        else:
            raise NotImplementedFilterError(f"Action not implemented: {action}", rule)

    for action in rule.actions:
        if not isinstance(action, AddTag):
            continue
        if action.tag == IMPORTANT_TAG:
            add_labels.append(IMPORTANT_LABEL)
        elif can_add_tags:
            path = tag_names.get(action.tag, action.tag)
            add_labels.append(label_directory.get_or_create(path))

    result.add_label_ids = _unique(add_labels)
    result.remove_label_ids = _unique(remove_labels)
    return result


def compile_rule(rule: Rule, label_directory, tag_names: Optional[Dict[str, str]] = None) -> CompiledFilter:
    try:
        criteria = compile_criteria(rule)
        action = compile_action(rule, label_directory, tag_names)
    except FilterNotCompilableError as e:
        raise e.with_rule(rule)
    logger.debug(f"Rule '{rule.name}' compiled to query: {criteria.query}")
    return CompiledFilter(rule, criteria, action)


class RuleCompiler:
    """Compile many rules against one shared label directory.

    Rules that can't be expressed as Gmail filters are reported, not raised,
    so the remaining rules still get compiled.
    """

    def __init__(self, label_directory, tag_names: Optional[Dict[str, str]] = None):
        self.label_directory = label_directory
        self.tag_names = tag_names

    def compile(self, rule: Rule) -> CompiledFilter:
        return compile_rule(rule, self.label_directory, self.tag_names)

    def compile_rules(
        self, rules: Iterable[Rule]
    ) -> Tuple[List[CompiledFilter], List[FilterNotCompilableError]]:
        compiled = []
        errors = []
        for rule in rules:
            try:
                compiled.append(self.compile(rule))
            except FilterNotCompilableError as e:
                logger.warning(f"Skipping rule '{rule.name}': {e.message}")
                errors.append(e)
        return compiled, errors
