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

from typing import Optional

from ardmake.boards import Board
from ardmake.config import Config
from ardmake.sdk import ArduinoSdk
from ardmake.utils import BuildError


class RequirementError(BuildError):
    pass


def check_requirements(config: Config, sdk: ArduinoSdk, board: Optional[Board]) -> None:
    """Check that the Arduino SDK files exist and that boards.txt contains the needed settings.
    Board can be None if boards.txt couldn't be read."""
    boards_txt = sdk.boards_txt
    if board is None or not boards_txt.exists():
        raise RequirementError("boards.txt not found.")

    def check_setting(prop: str, value: Optional[str]) -> None:
        if value is None:
            raise RequirementError(f"{config.board}.{prop} not found. "
                                   f"Check the section for your board in {boards_txt}")

    check_setting("build.variant", board.variant)
    check_setting("build.mcu", board.mcu)
    check_setting("build.f_cpu", board.f_cpu)
    check_setting("upload.protocol", board.upload_protocol)

    if not sdk.core_dir.is_dir():
        raise RequirementError(f"Arduino source files not found. "
                               f"Expected include path: {sdk.core_dir}")
    variant_dir = sdk.variant_dir(board.variant)
    if not variant_dir.is_dir():
        raise RequirementError(f"Arduino {board.variant} source files not found. "
                               f"Expected include path: {variant_dir}")
    if not sdk.avrdude_conf.exists():
        raise RequirementError(f"Avrdude conf {sdk.avrdude_conf} not found.")
