"""
Access to the Vault server through the Vault command-line client.

Every command prints an XML document on stdout:
    <vault>
      <history>
        <item version="12" txid="3481" date="3/14/2011 2:05:37 PM" user="jdoe" comment="Fixed build" />
      </history>
      <result success="yes" />
    </vault>
"""
import re
import subprocess
import xml.etree.ElementTree as ElementTree
from collections import defaultdict
from datetime import datetime

from .errors import SourceUnavailable
from .models import FileOperation, Label, SourceVersion

VAULT_DATE_FORMATS = (
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
)

LABEL_ACTION_PATTERN = re.compile(r'Label(?:ed)?\s+"?(?P<name>[^"]+?)"?\s*$', re.IGNORECASE)


def parse_vault_date(text):
    """
    This function converts a Vault date (e.g., '3/14/2011 2:05:37 PM') into a datetime.
    """
    text = (text or "").strip()

    for date_format in VAULT_DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format)
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise SourceUnavailable(f"Unrecognized date '{text}' in Vault output")


class VaultClient:
    def __init__(self, server, repository, user, password="", vault_cmd="vault", timeout=None, console=None, runner=subprocess.run):
        self.server = server
        self.repository = repository
        self.user = user
        self.password = password
        self.vault_cmd = vault_cmd
        self.timeout = timeout or None
        self.console = console
        self._runner = runner

    def _connection_args(self):
        args = ["-host", self.server, "-user", self.user, "-repository", self.repository]
        if self.password:
            args.extend(["-password", self.password])
        return args

    def execute_vault_command(self, command, *args):
        """
        This function executes a Vault command and returns its parsed XML output.

        Any failure (missing executable, non-zero exit code, timeout, unreadable output, unsuccessful result) raises SourceUnavailable.
        """
        cmd = [self.vault_cmd, command] + self._connection_args() + [str(arg) for arg in args]

        if self.console:
            self.console.debug(f"Executing the following command: vault {command} {' '.join(str(arg) for arg in args)}")

        try:
            # Own session: a Ctrl+C on the terminal reaches only vault2git, which stops between versions.
            result = self._runner(cmd, capture_output=True, text=True, timeout=self.timeout, start_new_session=True)

        except FileNotFoundError:
            raise SourceUnavailable(f"Vault client '{self.vault_cmd}' is not installed or not in PATH")

        except subprocess.TimeoutExpired:
            raise SourceUnavailable(f"Vault command '{command}' timed out after {self.timeout} seconds")

        try:
            root = ElementTree.fromstring(result.stdout or "")

        except ElementTree.ParseError:
            message = (result.stderr or result.stdout or "no output").strip()
            raise SourceUnavailable(f"Vault command '{command}' failed (exit code {result.returncode}): {message}")

        result_node = root.find("result")
        succeeded = result_node is not None and result_node.get("success", "").lower() in ("yes", "true")

        if result.returncode != 0 or not succeeded:
            error_node = root.find(".//error")
            message = (error_node.text if error_node is not None and error_node.text else result.stderr or "").strip()
            raise SourceUnavailable(f"Vault command '{command}' failed: {message or 'unsuccessful result'}")

        return root

    def version_history(self, folder, begin_version=1):
        """
        This function fetches the versions of a Vault folder starting at 'begin_version', in ascending order.

        Each version carries the file operations of its transaction, as reported by the folder's history.
        """
        root = self.execute_vault_command(
            "VERSIONHISTORY", "-beginversion", begin_version, "-rowlimit", 0, folder
        )

        items = {}
        for item in root.iter("item"):
            try:
                number = int(item.get("version"))
            except (TypeError, ValueError):
                raise SourceUnavailable(f"Version history item without a valid version: {item.attrib}")

            if number >= begin_version:
                items[number] = item

        if not items:
            return []

        timestamps = {number: parse_vault_date(item.get("date")) for number, item in items.items()}
        operations = self.file_operations(folder, min(timestamps.values()))

        versions = []
        for number in sorted(items):
            item = items[number]
            txid = item.get("txid")
            txid = int(txid) if txid and txid.isdigit() else None

            versions.append(
                SourceVersion(
                    number=number,
                    author=item.get("user", ""),
                    timestamp=timestamps[number],
                    comment=item.get("comment", "") or "",
                    txid=txid,
                    file_operations=operations.get(txid, ()),
                )
            )

        return versions

    def file_operations(self, folder, since):
        """
        This function fetches the file-level actions recorded in 'folder' since 'since', grouped by transaction id.

        For example: {3481: (FileOperation('$/src/app/main.c', 'Modified'), FileOperation('$/src/app/util.c', 'Added'))}
        """
        root = self.execute_vault_command(
            "HISTORY",
            "-begindate", since.strftime(VAULT_DATE_FORMATS[0]),
            "-excludeactions", "label",
            "-rowlimit", 0,
            folder,
        )

        operations = defaultdict(list)
        for item in root.iter("item"):
            txid = item.get("txid")
            path = item.get("name")

            if not (txid and txid.isdigit() and path):
                continue

            operations[int(txid)].append(
                FileOperation(path=path, change_kind=item.get("typeName") or item.get("type") or "Unknown")
            )

        return {txid: tuple(entries) for txid, entries in operations.items()}

    def get_version(self, folder, version, destination):
        """
        This function downloads the complete tree of 'folder' as of 'version' into 'destination'.
        """
        self.execute_vault_command(
            "GETVERSION",
            "-backup", "no",
            "-merge", "overwrite",
            "-setfiletime", "checkin",
            "-makewritable",
            version,
            folder,
            destination,
        )

    def labels(self, folder, target_branch):
        """
        This function fetches the labels applied to a Vault folder, attributed to the Git branch the folder maps to.
        """
        root = self.execute_vault_command("HISTORY", "-includeactions", "label", "-rowlimit", 0, folder)

        labels = []
        for item in root.iter("item"):
            name = item.get("label")

            if not name:
                match = LABEL_ACTION_PATTERN.search(item.get("actionString", ""))
                name = match.group("name") if match else None

            version = item.get("version")

            if not name or not (version and version.isdigit()):
                if self.console:
                    self.console.warning(f"Ignoring unreadable label entry in '{folder}': {item.attrib}")
                continue

            labels.append(Label(name=name, target_branch=target_branch, version=int(version)))

        return labels
