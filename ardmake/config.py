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

# Project configuration. Each variable can be set, by increasing order of precedence:
# - by an environment variable of the same name,
# - in the `ardmake.cfg` file of the project directory,
# - on the command line, e.g. `ardmake upload SERIAL_PORT=/dev/ttyACM0`.

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from ardmake.properties import Properties
from ardmake.utils import BuildError, PathLike

CONFIG_FILENAME = "ardmake.cfg"

# variables read from the environment, others have names too generic (CC, SIZE, etc).
ENVIRONMENT_VARIABLES = ["ARDUINO_PATH", "BOARD", "CPU", "SERIAL_PORT", "MONITOR_BAUD"]


class ConfigError(BuildError):
    pass


@dataclass
class Config:
    # path to arduino software
    arduino_path: str = "/usr/share/arduino"
    # board name ('uno', 'atmega328', 'diecimila', etc), use the `boards` target for a list.
    board: str = "uno"
    # processor option for boards with a cpu menu ('atmega328', 'atmega168', etc)
    cpu: str = ""

    serial_port: str = "/dev/ttyUSB0"
    monitor_baud: str = "9600"

    project: str = "example"
    # extra files the project depends on, separated by whitespace
    inc: str = ""
    src_dir: str = "src"
    build_dir: str = "build"
    libarduino_dir: str = "libarduino"

    # build tools
    cc: str = "avr-gcc"
    cxx: str = "avr-g++"
    ar: str = "avr-ar"
    objcopy: str = "avr-objcopy"
    strip: str = "avr-strip"
    size: str = "avr-size"
    avrdude: str = "avrdude"

    project_dir: Path = Path(".")

    @staticmethod
    def variable_names() -> List[str]:
        return [f.name.upper() for f in fields(Config) if f.name != "project_dir"]

    def set_variable(self, name: str, value: str) -> None:
        if name not in Config.variable_names():
            raise ConfigError(f"unknown variable '{name}'")
        setattr(self, name.lower(), value.strip())

    def apply(self, variables: Mapping[str, str]) -> None:
        for name, value in variables.items():
            self.set_variable(name, value)

    @staticmethod
    def create(project_dir: PathLike = ".", environ: Optional[Mapping[str, str]] = None,
               assignments: Sequence[str] = ()) -> "Config":
        """Create configuration from the environment, the project configuration file and
        command line assignments, in that order."""
        config = Config(project_dir=Path(project_dir))
        if environ is None:
            environ = os.environ
        config.apply({k: v for k, v in environ.items() if k in ENVIRONMENT_VARIABLES})

        config_file = config.project_dir / CONFIG_FILENAME
        if config_file.exists():
            try:
                config.apply(dict(Properties.load(config_file)))
            except ConfigError as e:
                raise ConfigError(f"{config_file}: {e}") from e

        config.apply(parse_assignments(assignments))
        return config

    def resolve(self, path: PathLike) -> Path:
        return self.project_dir / Path(path).expanduser()

    @property
    def src_path(self) -> Path:
        return self.resolve(self.src_dir)

    @property
    def build_path(self) -> Path:
        return self.resolve(self.build_dir)

    @property
    def libarduino_path(self) -> Path:
        return self.resolve(self.libarduino_dir)

    @property
    def elf_path(self) -> Path:
        return self.resolve(f"{self.project}.elf")

    @property
    def hex_path(self) -> Path:
        return self.resolve(f"{self.project}.hex")

    @property
    def inc_paths(self) -> List[Path]:
        return [self.resolve(p) for p in self.inc.split()]


def is_assignment(arg: str) -> bool:
    name, sep, _ = arg.partition("=")
    return bool(sep) and name.isidentifier()


def parse_assignments(assignments: Sequence[str]) -> Dict[str, str]:
    variables = {}
    for assignment in assignments:
        if not is_assignment(assignment):
            raise ConfigError(f"invalid assignment '{assignment}', expected NAME=value")
        name, _, value = assignment.partition("=")
        variables[name.strip()] = value
    return variables
