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

# Command lines for the AVR toolchain (avr-gcc, binutils-avr) and avrdude.
# Commands are never run through a shell.

import abc
import subprocess
from pathlib import Path
from typing import List, Sequence

from ardmake.boards import Board
from ardmake.config import Config
from ardmake.sdk import ArduinoSdk
from ardmake.utils import BuildError, print_command

COMPILER_FLAGS = ["-Wall", "-Os", "-funsigned-char", "-funsigned-bitfields",
                  "-fpack-struct", "-fno-exceptions"]

# exit codes used by shells when a command is not found or cannot be executed,
# and base of the exit code for a command killed by a signal
EXIT_COMMAND_NOT_FOUND = 127
EXIT_COMMAND_NOT_EXECUTABLE = 126
EXIT_SIGNAL_BASE = 128


class ToolError(BuildError):
    returncode: int

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = returncode


class Runner(abc.ABC):
    def run(self, cmd: Sequence[str]) -> None:
        raise NotImplementedError

    def output(self, cmd: Sequence[str]) -> str:
        raise NotImplementedError


class ProcessRunner(Runner):
    """Runs commands as subprocesses, echoing them first unless silent."""
    silent: bool

    def __init__(self, silent: bool = False):
        self.silent = silent

    def _run(self, cmd: Sequence[str], capture: bool) -> subprocess.CompletedProcess:
        if not self.silent:
            print_command(cmd)
        try:
            result = subprocess.run(list(cmd), stdout=subprocess.PIPE if capture else None,
                                    universal_newlines=True)
        except FileNotFoundError as e:
            raise ToolError(f"{cmd[0]}: command not found", EXIT_COMMAND_NOT_FOUND) from e
        except OSError as e:
            raise ToolError(f"{cmd[0]}: {e.strerror}", EXIT_COMMAND_NOT_EXECUTABLE) from e
        if result.returncode < 0:
            signum = -result.returncode
            raise ToolError(f"{cmd[0]} killed by signal {signum}", EXIT_SIGNAL_BASE + signum)
        if result.returncode != 0:
            raise ToolError(f"{cmd[0]} failed with exit code {result.returncode}",
                            result.returncode)
        return result

    def run(self, cmd: Sequence[str]) -> None:
        self._run(cmd, False)

    def output(self, cmd: Sequence[str]) -> str:
        return self._run(cmd, True).stdout


class Toolchain:
    """Assembles and runs the toolchain commands for a board."""
    config: Config
    sdk: ArduinoSdk
    board: Board
    runner: Runner

    def __init__(self, config: Config, sdk: ArduinoSdk, board: Board, runner: Runner):
        self.config = config
        self.sdk = sdk
        self.board = board
        self.runner = runner

    @property
    def hardware_flags(self) -> List[str]:
        return [f"-mmcu={self.board.mcu}", f"-DF_CPU={self.board.f_cpu}"]

    @property
    def include_flags(self) -> List[str]:
        return ["-I", str(self.config.src_path),
                "-I", str(self.sdk.core_dir),
                "-I", str(self.sdk.variant_dir(self.board.variant))]

    @property
    def cflags(self) -> List[str]:
        return COMPILER_FLAGS + self.hardware_flags + self.include_flags

    @property
    def cxxflags(self) -> List[str]:
        return COMPILER_FLAGS + self.hardware_flags + self.include_flags

    @property
    def elf_flags(self) -> List[str]:
        return self.hardware_flags + ["-Wall", "-Os"]

    def compile_c_command(self, src: Path, obj: Path) -> List[str]:
        return [self.config.cc, *self.cflags, "-c", "-o", str(obj), str(src)]

    def compile_cpp_command(self, src: Path, obj: Path) -> List[str]:
        return [self.config.cxx, *self.cxxflags, "-c", "-o", str(obj), str(src)]

    def assemble_command(self, src: Path, obj: Path) -> List[str]:
        return [self.config.cc, *self.cflags, "-x", "assembler-with-cpp",
                "-c", "-o", str(obj), str(src)]

    def archive_command(self, lib: Path, objs: Sequence[Path]) -> List[str]:
        return [self.config.ar, "rcs", str(lib), *(str(o) for o in objs)]

    def link_command(self, objs: Sequence[Path], elf: Path, lib_dir: Path) -> List[str]:
        return [self.config.cxx, *self.elf_flags, *(str(o) for o in objs), "-o", str(elf),
                f"-L{lib_dir}", "-larduino"]

    def strip_command(self, elf: Path) -> List[str]:
        return [self.config.strip, "-s", str(elf)]

    def hex_command(self, elf: Path, hex_file: Path) -> List[str]:
        return [self.config.objcopy, "-O", "ihex", "-R", ".eeprom", str(elf), str(hex_file)]

    def size_command(self, elf: Path) -> List[str]:
        return [self.config.size, str(elf)]

    def avrdude_command(self, hex_file: Path) -> List[str]:
        cmd = [self.config.avrdude, "-C", str(self.sdk.avrdude_conf),
               f"-p{self.board.mcu}", f"-c{self.board.upload_protocol}",
               f"-P{self.config.serial_port}"]
        if self.board.upload_speed:
            cmd.append(f"-b{self.board.upload_speed}")
        cmd += ["-D", f"-Uflash:w:{hex_file}:i"]
        return cmd

    def compile(self, src: Path, obj: Path) -> None:
        """Compile a source file to an object file, the compiler used depends on the extension."""
        suffix = src.suffix
        if suffix == ".c":
            cmd = self.compile_c_command(src, obj)
        elif suffix == ".cpp":
            cmd = self.compile_cpp_command(src, obj)
        elif suffix in (".S", ".s"):
            cmd = self.assemble_command(src, obj)
        else:
            raise BuildError(f"no rule to compile '{src}'")
        self.runner.run(cmd)

    def archive(self, lib: Path, objs: Sequence[Path]) -> None:
        self.runner.run(self.archive_command(lib, objs))

    def link(self, objs: Sequence[Path], elf: Path, lib_dir: Path) -> None:
        self.runner.run(self.link_command(objs, elf, lib_dir))

    def strip(self, elf: Path) -> None:
        self.runner.run(self.strip_command(elf))

    def make_hex(self, elf: Path, hex_file: Path) -> None:
        self.runner.run(self.hex_command(elf, hex_file))

    def size(self, elf: Path) -> str:
        return self.runner.output(self.size_command(elf))

    def flash(self, hex_file: Path) -> None:
        self.runner.run(self.avrdude_command(hex_file))
