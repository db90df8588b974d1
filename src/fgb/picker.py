"""Selection round-trip with fzf."""

import shutil
import subprocess
from collections.abc import Iterable, Sequence
from typing import Optional

from fgb.exceptions import PickerError, PreconditionError
from fgb.formatter import decode_ref, strip_ansi
from fgb.logging_config import get_logger
from fgb.models import Accepted, Cancelled, ControlKey, SelectionReply

logger = get_logger(__name__)

# fzf exit codes meaning "nothing chosen"
_NO_MATCH = 1
_INTERRUPTED = 130

# Field 1 is the decorated branch name; drop its first and last character
PREVIEW_COMMAND = (
    "git log --oneline --decorate --graph --color=always \"$(printf '%s' {1} | sed 's/^.//;s/.$//')\" --"
)


class FzfPicker:
    """Run fzf as a child process and return its raw reply."""

    def __init__(self, height: str = "80%", executable: str = "fzf") -> None:
        self.height = height
        self.executable = executable

    def build_args(self, header: str, expect_keys: Iterable[str], query: Optional[str] = None) -> list[str]:
        """Build the fzf argument list.

        Every value is its own argument, so branch names, authors and queries
        never pass through a shell.
        """
        args = [
            self.executable,
            "--ansi",
            "--bind=ctrl-y:accept,ctrl-t:toggle+down",
            "--cycle",
            "--multi",
            "--pointer=",
            "--select-1",
            "--reverse",
            f"--height={self.height}",
            "--preview",
            PREVIEW_COMMAND,
            "--header",
            header,
        ]
        keys = [key for key in expect_keys if key]
        if keys:
            args.append(f"--expect={','.join(keys)}")
        if query:
            args.extend(["--query", query])
        return args

    def select(
        self,
        lines: Sequence[str],
        header: str,
        expect_keys: Iterable[str],
        query: Optional[str] = None,
    ) -> tuple[str, list[str]]:
        """Show lines in fzf.

        Returns:
            The key that completed the selection ("" for the accept binding)
            and the selected lines in selection order; ("", []) on abort.
        """
        if shutil.which(self.executable) is None:
            raise PreconditionError(f"{self.executable} is not installed")
        args = self.build_args(header, expect_keys, query)
        logger.debug("running %s", args)
        result = subprocess.run(
            args,
            input="\n".join(lines),
            stdout=subprocess.PIPE,
            text=True,
            check=False,
        )
        if result.returncode in (_NO_MATCH, _INTERRUPTED):
            return "", []
        if result.returncode != 0:
            raise PickerError(f"{self.executable} exited with code {result.returncode}")
        output = result.stdout.splitlines()
        if not output:
            return "", []
        return output[0], output[1:]


def parse_reply(
    pressed_key: str,
    raw_lines: Iterable[str],
    local_brackets: str = "[]",
    remote_brackets: str = "()",
) -> SelectionReply:
    """Turn a raw picker reply into a SelectionReply."""
    refs = []
    for line in raw_lines:
        fields = strip_ansi(line).split()
        if not fields:
            continue
        full_name = decode_ref(fields[0], local_brackets, remote_brackets)
        if full_name is None:
            logger.warning("Ignoring unrecognized picker line: %s", line)
            continue
        refs.append(full_name)
    if not refs:
        return Cancelled()
    if pressed_key:
        return ControlKey(pressed_key=pressed_key, selected_refs=tuple(refs))
    return Accepted(selected_refs=tuple(refs))


def run_picker(
    picker: FzfPicker,
    lines: Sequence[str],
    header: str,
    expect_keys: Iterable[str],
    query: Optional[str] = None,
    local_brackets: str = "[]",
    remote_brackets: str = "()",
) -> SelectionReply:
    """Perform one picker round-trip."""
    if not lines:
        return Cancelled()
    pressed_key, raw_lines = picker.select(lines, header, expect_keys, query)
    return parse_reply(pressed_key, raw_lines, local_brackets, remote_brackets)
