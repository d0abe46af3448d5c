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

# Parses the output of avr-size in Berkeley format, for example:
#
#      text    data     bss     dec     hex filename
#      1030       0       9    1039     40f example.elf
#
# Data is stored in flash and copied to RAM at startup, so it counts for both regions.

import re
from dataclasses import dataclass
from typing import Optional

import colorama

from ardmake.boards import Board
from ardmake.utils import BuildError, readable_size


class SizeError(BuildError):
    pass


@dataclass
class SizeInfo:
    text: int
    data: int
    bss: int

    @property
    def flash_usage(self) -> int:
        return self.text + self.data

    @property
    def ram_usage(self) -> int:
        return self.data + self.bss

    @staticmethod
    def parse(output: str) -> "SizeInfo":
        for line in output.splitlines():
            match = re.match(r"^\s*(\d+)\s+(\d+)\s+(\d+)\s+\d+\s+[\da-fA-F]+\s+", line)
            if match:
                return SizeInfo(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        raise SizeError("could not parse size output")


def print_size_report(info: SizeInfo, board: Board) -> None:
    """Print flash and RAM usage, compared to the board capacity if known.
    Raises an error if usage exceeds capacity."""

    def print_section_usage(name: str, usage: int, size: Optional[int]) -> None:
        if size:
            print(f"{name:<6}   {usage:>7} B   {size:>9} B   {usage / size:>6.1%}")
        else:
            print(f"{name:<6}   {usage:>7} B   {'?':>11}   {'?':>6}")

    def print_subsection_usage(name: str, usage: int) -> None:
        print(colorama.Fore.LIGHTBLACK_EX + f"  {name:<4}   {usage:>7} B ({readable_size(usage)})"
              + colorama.Style.RESET_ALL)

    print("=========================================")
    print("Region   Used size   Region size   % used")
    print_section_usage("Flash", info.flash_usage, board.maximum_size)
    print_subsection_usage("Text", info.text)
    if info.data:
        print_subsection_usage("Data", info.data)
    print_section_usage("RAM", info.ram_usage, board.maximum_data_size)
    if info.bss:
        print_subsection_usage("BSS", info.bss)
    print("=========================================")

    if board.maximum_size and info.flash_usage > board.maximum_size:
        raise SizeError("flash usage exceeds available capacity!")
    if board.maximum_data_size and info.ram_usage > board.maximum_data_size:
        raise SizeError("RAM usage exceeds available capacity!")
