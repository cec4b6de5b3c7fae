import os
from typing import Callable, Dict, List, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from config import GMAIL_CREDENTIALS_PATH, GMAIL_TOKEN_PATH, SCOPES, USER_ID, VERSION
from logger import logger
from rules.actions import Forward
from rules.compiler import CompiledFilter, RuleCompiler
from rules.errors import (
    FilterAlreadyExistsError,
    FilterNotCompilableError,
    UnrecognizedForwardingAddressError,
)
from rules.models import Rule, RuleSet


UNRECOGNIZED_FORWARDING_ADDRESS = "Unrecognized forwarding address"
FILTER_ALREADY_EXISTS = "Filter already exists"
DRY_RUN_LABEL_PREFIX = "dry-run:"


class GmailService:
    def __init__(self, client=None):
        self.client = client or self._get_client()

    def _get_client(self):
        credentials = None
        if os.path.exists(GMAIL_TOKEN_PATH):
            credentials = Credentials.from_authorized_user_file(GMAIL_TOKEN_PATH, SCOPES)

        if not credentials or not credentials.valid:
            if credentials and credentials.expired and credentials.refresh_token:
                credentials.refresh(Request())
            else:
                flow = InstalledAppFlow.from_client_secrets_file(
                    GMAIL_CREDENTIALS_PATH, SCOPES
                )
                credentials = flow.run_local_server(port=0)

            with open(GMAIL_TOKEN_PATH, "w") as token:
                token.write(credentials.to_json())

        try:
            return build("gmail", VERSION, credentials=credentials)
        except HttpError as e:
            logger.error("Not able to create Gmail client: %s", e)
            raise


class LabelDirectory:
    """Resolve slash-delimited label paths to Gmail label ids, creating missing ones.

    The label list is fetched once and kept up to date with the labels this
    instance creates, so share one instance across all the rules of a run.
    In dry-run mode nothing is created: missing labels get a placeholder id.
    """

    def __init__(self, client, dry_run: bool = False):
        self.client = client
        self.dry_run = dry_run
        self._labels: Optional[List[Dict]] = None

    @property
    def labels(self) -> List[Dict]:
        if self._labels is None:
            self._labels = self._get_labels()
        return self._labels

    def _get_labels(self) -> List[Dict]:
        try:
            results = self.client.users().labels().list(userId=USER_ID).execute()
            return list(results.get("labels", []))
        except HttpError as e:
            logger.error("Not able to fetch labels: %s", e)
            raise

    def find_by_path(self, path: str, case_sensitive: bool = False) -> Optional[str]:
        search = path if case_sensitive else path.lower()
        for label in self.labels:
            name = label["name"] if case_sensitive else label["name"].lower()
            if name == search:
                return label["id"]
        return None

    def get_or_create(self, path: str, case_sensitive: bool = False) -> str:
        """Return the id of the label at ``path``, creating each missing level in turn."""
        label_id = self.find_by_path(path, case_sensitive)
        if label_id is not None:
            return label_id

        prefix = ""
        for name in path.split("/"):
            full_name = prefix + name
            label_id = self.find_by_path(full_name)
            if label_id is None:
                label_id = self._create_label(full_name)
            prefix = full_name + "/"
        return label_id

    def _create_label(self, name: str) -> str:
        if self.dry_run:
            label = {"id": DRY_RUN_LABEL_PREFIX + name, "name": name}
            logger.info(f"Would create label '{name}'")
        else:
            try:
                label = (
                    self.client.users()
                    .labels()
                    .create(
                        userId=USER_ID,
                        body={
                            "name": name,
                            "labelListVisibility": "labelShow",
                            "messageListVisibility": "show",
                        },
                    )
                    .execute()
                )
            except HttpError as e:
                logger.error(f"Error creating label {name}: {e}")
                raise
            logger.info(f"Created label '{name}' ({label['id']})")

        self.labels.append(label)
        return label["id"]


def _error_reason(error: HttpError) -> str:
    return getattr(error, "reason", None) or str(error)


class FilterPublisher:
    """Create compiled filters through the Gmail settings API."""

    def __init__(self, client):
        self.client = client

    def publish(self, compiled: CompiledFilter) -> Dict:
        try:
            return (
                self.client.users()
                .settings()
                .filters()
                .create(userId=USER_ID, body=compiled.to_dict())
                .execute()
            )
        except HttpError as e:
            reason = _error_reason(e)
            if UNRECOGNIZED_FORWARDING_ADDRESS.lower() in reason.lower():
                recipient = next(
                    (a.recipient for a in compiled.rule.actions if isinstance(a, Forward)),
                    None,
                )
                raise UnrecognizedForwardingAddressError(
                    UNRECOGNIZED_FORWARDING_ADDRESS, recipient, compiled.rule
                ) from e
            if FILTER_ALREADY_EXISTS.lower() in reason.lower():
                raise FilterAlreadyExistsError(FILTER_ALREADY_EXISTS, compiled.rule) from e
            logger.error(f"Error creating filter for rule '{compiled.rule.name}': {e}")
            raise


class FilterWriter:
    """Compile the enabled rules of a rule set and create them as Gmail filters.

    Label directories are kept per dry-run flag, so placeholder labels of a
    dry run never leak into a real one.
    """

    def __init__(self, client, tag_names: Optional[Dict[str, str]] = None):
        self.client = client
        self.tag_names = tag_names
        self.publisher = FilterPublisher(client)
        self._compilers: Dict[bool, RuleCompiler] = {}

    def label_directory(self, dry_run: bool = False) -> LabelDirectory:
        return self._get_compiler(dry_run).label_directory

    def _get_compiler(self, dry_run: bool) -> RuleCompiler:
        if dry_run not in self._compilers:
            directory = LabelDirectory(self.client, dry_run=dry_run)
            self._compilers[dry_run] = RuleCompiler(directory, self.tag_names)
        return self._compilers[dry_run]

    def ensure_filter(self, rule: Rule, dry_run: bool = False) -> CompiledFilter:
        compiled = self._get_compiler(dry_run).compile(rule)
        if dry_run:
            logger.info(f"Would create filter for rule '{rule.name}': {compiled.to_dict()}")
        else:
            self.publisher.publish(compiled)
            logger.debug(f"Created filter for rule '{rule.name}'")
        return compiled

    def ensure_filters(
        self,
        ruleset: Optional[RuleSet],
        dry_run: bool = False,
        on_rule: Optional[Callable[[Rule], None]] = None,
    ) -> List[FilterNotCompilableError]:
        """Returns the errors of the rules that could not be written; disabled rules are skipped.

        ``on_rule`` is called after each enabled rule, whether it was written or not.
        """
        errors = []
        if ruleset is None:
            return errors
        for rule in ruleset:
            if not rule.enabled:
                continue
            try:
                self.ensure_filter(rule, dry_run=dry_run)
            except FilterNotCompilableError as e:
                logger.warning(f"Skipping rule '{rule.name}': {e.message}")
                errors.append(e)
            if on_rule is not None:
                on_rule(rule)
        return errors
