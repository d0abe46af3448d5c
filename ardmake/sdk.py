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
from pathlib import Path

from ardmake.utils import PathLike


class ArduinoSdk:
    """Locations of the Arduino SDK files. Both the old layout (hardware/arduino/boards.txt)
    and the 1.5+ layout (hardware/arduino/avr/boards.txt) are supported."""
    path: Path

    def __init__(self, path: PathLike):
        self.path = Path(path)

    @property
    def hardware_dir(self) -> Path:
        hardware_dir = self.path / "hardware/arduino"
        avr_dir = hardware_dir / "avr"
        if not (hardware_dir / "boards.txt").exists() and (avr_dir / "boards.txt").exists():
            return avr_dir
        return hardware_dir

    @property
    def boards_txt(self) -> Path:
        return self.hardware_dir / "boards.txt"

    @property
    def core_dir(self) -> Path:
        return self.hardware_dir / "cores/arduino"

    def variant_dir(self, variant: str) -> Path:
        return self.hardware_dir / "variants" / variant

    @property
    def avrdude_conf(self) -> Path:
        conf = self.path / "hardware/tools/avrdude.conf"
        alt_conf = self.path / "hardware/tools/avr/etc/avrdude.conf"
        if not conf.exists() and alt_conf.exists():
            return alt_conf
        return conf
