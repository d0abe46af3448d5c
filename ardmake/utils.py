#  Copyright 2022 Nicolas Maltais
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
import sys
from pathlib import Path
from typing import Iterable, Sequence, Union

import colorama

PathLike = Union[str, Path]


class BuildError(Exception):
    pass


def readable_size(size: int) -> str:
    """Print size in human readable format, with units."""
    if size < 1024:
        return f"{size} B"
    size /= 1024
    for unit in ["k", "M", "G", "T"]:
        if abs(size) < 1024:
            return f"{size:.2f} {unit}B"
        size /= 1024
    raise ValueError()


def is_outdated(target: Path, prerequisites: Iterable[Path]) -> bool:
    """Returns true if target doesn't exist or if any of the prerequisites
    was modified after it. Missing prerequisites are ignored."""
    if not target.exists():
        return True
    target_time = target.stat().st_mtime
    for prereq in prerequisites:
        if prereq.exists() and prereq.stat().st_mtime > target_time:
            return True
    return False


def print_command(cmd: Sequence[str]) -> None:
    print(colorama.Fore.LIGHTBLACK_EX + " ".join(cmd) + colorama.Style.RESET_ALL)


def print_error(message: str) -> None:
    print(colorama.Fore.RED + f"ERROR: {message}" + colorama.Style.RESET_ALL, file=sys.stderr)
