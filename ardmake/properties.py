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

# Reader for the `key=value` property files used by the Arduino SDK (boards.txt,
# platform.txt) and by the project configuration file. Keys are dot-delimited,
# blank lines and lines starting with '#' are ignored.

from typing import Iterable, Iterator, List, Optional, Tuple

from ardmake.utils import PathLike


class Properties:
    """Ordered list of properties. Duplicate keys are kept, lookups return the first one."""
    entries: List[Tuple[str, str]]

    def __init__(self, entries: Iterable[Tuple[str, str]] = ()):
        self.entries = list(entries)

    @staticmethod
    def parse(lines: Iterable[str]) -> "Properties":
        entries = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            if not sep:
                continue
            entries.append((key.strip(), value.strip()))
        return Properties(entries)

    @staticmethod
    def load(filename: PathLike) -> "Properties":
        with open(filename, "r", encoding="utf-8", errors="replace") as file:
            return Properties.parse(file)

    def get(self, key: str) -> Optional[str]:
        """Get the value of the first property with a key, None if there's none or if it's empty."""
        for k, v in self.entries:
            if k == key:
                return v or None
        return None

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)
