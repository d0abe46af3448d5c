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

# Board parameters lookup in the boards.txt file shipped with the Arduino SDK.
# Each board has a section of properties prefixed by its identifier, for example:
#
#   uno.name=Arduino Uno
#   uno.upload.protocol=arduino
#   uno.build.mcu=atmega328p
#   uno.build.f_cpu=16000000L
#   uno.build.variant=standard
#
# Boards offering a choice of processor define overrides in a menu:
#
#   nano.menu.cpu.atmega168.build.mcu=atmega168

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ardmake.properties import Properties
from ardmake.utils import PathLike


@dataclass
class Board:
    board_id: str
    name: Optional[str]
    variant: Optional[str]
    mcu: Optional[str]
    f_cpu: Optional[str]
    upload_protocol: Optional[str]
    upload_speed: Optional[str]
    maximum_size: Optional[int]
    maximum_data_size: Optional[int]

    def __repr__(self) -> str:
        return f"{self.board_id} ({self.name})"


class BoardsFile:
    properties: Properties

    def __init__(self, properties: Properties):
        self.properties = properties

    @staticmethod
    def load(filename: PathLike) -> "BoardsFile":
        return BoardsFile(Properties.load(filename))

    def lookup(self, board_id: str, prop: str, cpu: Optional[str] = None) -> Optional[str]:
        """Get a board property. If a processor is given, its menu option takes precedence."""
        if cpu:
            value = self.properties.get(f"{board_id}.menu.cpu.{cpu}.{prop}")
            if value is not None:
                return value
        return self.properties.get(f"{board_id}.{prop}")

    def list_boards(self) -> List[Tuple[str, str]]:
        """List of (identifier, name) of all boards, in file order."""
        boards = []
        for key, value in self.properties:
            board_id, _, prop = key.partition(".")
            if prop == "name" and board_id and value:
                boards.append((board_id, value))
        return boards

    def load_board(self, board_id: str, cpu: Optional[str] = None) -> Board:
        def get(prop: str) -> Optional[str]:
            return self.lookup(board_id, prop, cpu)

        def get_int(prop: str) -> Optional[int]:
            value = get(prop)
            return int(value) if value is not None and value.isdigit() else None

        return Board(
            board_id=board_id,
            name=get("name"),
            variant=get("build.variant"),
            mcu=get("build.mcu"),
            f_cpu=get("build.f_cpu"),
            upload_protocol=get("upload.protocol"),
            upload_speed=get("upload.speed"),
            maximum_size=get_int("upload.maximum_size"),
            maximum_data_size=get_int("upload.maximum_data_size"),
        )
