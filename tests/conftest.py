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
import os
import time
from pathlib import Path
from typing import List, Optional, Sequence

import pytest
from serial import SerialException

from ardmake import serialport
from ardmake.boards import BoardsFile
from ardmake.builder import Builder
from ardmake.config import Config
from ardmake.sdk import ArduinoSdk
from ardmake.toolchain import Runner, Toolchain, ToolError

BOARDS_TXT = """\
# See: http://code.google.com/p/arduino/wiki/Platforms

##############################################################

uno.name=Arduino Uno
uno.upload.protocol=arduino
uno.upload.maximum_size=32256
uno.upload.speed=115200
uno.bootloader.low_fuses=0xff
uno.build.mcu=atmega328p
uno.build.f_cpu=16000000L
uno.build.core=arduino
uno.build.variant=standard

##############################################################

menu.cpu=Processor

nano.name=Arduino Nano
nano.upload.protocol=arduino
nano.build.f_cpu=16000000L
nano.build.variant=eightanaloginputs
nano.menu.cpu.atmega328=ATmega328P
nano.menu.cpu.atmega328.upload.speed=57600
nano.menu.cpu.atmega328.upload.maximum_size=30720
nano.menu.cpu.atmega328.upload.maximum_data_size=2048
nano.menu.cpu.atmega328.build.mcu=atmega328p
nano.menu.cpu.atmega168=ATmega168
nano.menu.cpu.atmega168.upload.speed=19200
nano.menu.cpu.atmega168.build.mcu=atmega168
nano.build.mcu=atmega328p

##############################################################

broken.name=Broken Board
broken.upload.protocol=stk500
broken.build.mcu=atmega8
broken.build.f_cpu=
broken.build.variant=standard

mega.name=Arduino Mega
mega.upload.protocol=wiring
mega.build.mcu=atmega2560
mega.build.f_cpu=16000000L
mega.build.variant=mega

nomcu.name=No MCU Board
nomcu.upload.protocol=arduino
nomcu.build.f_cpu=16000000L
nomcu.build.variant=standard

noproto.name=No Protocol Board
noproto.build.mcu=atmega328p
noproto.build.f_cpu=16000000L
noproto.build.variant=standard
"""

SIZE_OUTPUT = """\
   text	   data	    bss	    dec	    hex	filename
   1030	     12	      9	   1051	    41b	example.elf
"""


def write_file(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def set_mtime(path: Path, offset: float) -> None:
    """Set modification time of a file relative to now."""
    t = time.time() + offset
    os.utime(path, (t, t))


class FakeRunner(Runner):
    """Records commands instead of running them and creates the files they would output."""
    commands: List[List[str]]
    fail_on: Optional[str]
    size_output: str

    def __init__(self, fail_on: Optional[str] = None, size_output: str = SIZE_OUTPUT):
        self.commands = []
        self.fail_on = fail_on
        self.size_output = size_output

    def run(self, cmd: Sequence[str]) -> None:
        cmd = list(cmd)
        self.commands.append(cmd)
        if self.fail_on and any(self.fail_on in arg for arg in cmd):
            raise ToolError(f"{cmd[0]} failed with exit code 2", 2)

        output = None
        if "-o" in cmd:
            output = cmd[cmd.index("-o") + 1]
        elif cmd[1:2] == ["rcs"]:
            output = cmd[2]
        elif "ihex" in cmd:
            output = cmd[-1]
        if output:
            write_file(Path(output), "output")

    def output(self, cmd: Sequence[str]) -> str:
        self.commands.append(list(cmd))
        return self.size_output

    def tools(self) -> List[str]:
        return [cmd[0] for cmd in self.commands]


@pytest.fixture
def sdk_path(tmp_path: Path) -> Path:
    sdk = tmp_path / "arduino"
    hardware = sdk / "hardware/arduino"
    write_file(hardware / "boards.txt", BOARDS_TXT)
    write_file(hardware / "cores/arduino/main.cpp", "int main(void) { return 0; }\n")
    write_file(hardware / "cores/arduino/wiring.c", "void init(void) {}\n")
    write_file(hardware / "cores/arduino/wiring_pulse.S", "; pulse\n")
    write_file(hardware / "cores/arduino/Arduino.h", "#pragma once\n")
    write_file(hardware / "variants/standard/pins_arduino.h")
    write_file(hardware / "variants/eightanaloginputs/pins_arduino.h")
    write_file(sdk / "hardware/tools/avrdude.conf", "# avrdude\n")
    return sdk


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    project = tmp_path / "project"
    write_file(project / "src/blink.cpp", "void setup() {}\nvoid loop() {}\n")
    write_file(project / "src/util.c", "int add(int a, int b) { return a + b; }\n")
    write_file(project / "src/notes.txt", "not a source\n")
    return project


@pytest.fixture
def config(project_dir: Path, sdk_path: Path) -> Config:
    return Config.create(project_dir, environ={}, assignments=[f"ARDUINO_PATH={sdk_path}"])


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def toolchain(config: Config, sdk_path: Path, runner: FakeRunner) -> Toolchain:
    sdk = ArduinoSdk(sdk_path)
    board = BoardsFile.load(sdk.boards_txt).load_board(config.board)
    return Toolchain(config, sdk, board, runner)


@pytest.fixture
def builder(config: Config, toolchain: Toolchain) -> Builder:
    return Builder(config, toolchain)


class FakeSerial:
    """Stands in for pyserial's Serial, records DTR changes and returns queued data."""
    instances: List["FakeSerial"] = []
    incoming: List[bytes] = []

    def __init__(self, port: str, baudrate: int, **kwargs):
        if port == "/dev/missing":
            raise SerialException(f"could not open port {port}")
        self.port = port
        self.baudrate = baudrate
        self.dtr_changes = []
        self.closed = False
        FakeSerial.instances.append(self)

    @property
    def dtr(self) -> bool:
        return self.dtr_changes[-1] if self.dtr_changes else True

    @dtr.setter
    def dtr(self, value: bool) -> None:
        self.dtr_changes.append(value)

    @property
    def in_waiting(self) -> int:
        return len(FakeSerial.incoming[0]) if FakeSerial.incoming else 0

    def read(self, size: int = 1) -> bytes:
        return FakeSerial.incoming.pop(0) if FakeSerial.incoming else b""

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_serial(monkeypatch):
    """Replace pyserial's Serial with FakeSerial and skip the reset delay."""
    FakeSerial.instances = []
    FakeSerial.incoming = []
    monkeypatch.setattr(serialport, "Serial", FakeSerial)
    monkeypatch.setattr(serialport, "RESET_PULSE_TIME", 0)
    return FakeSerial
