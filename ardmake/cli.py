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

# Command line program used to build Arduino projects with the AVR toolchain and upload them.
#
# 1. Place the project source files (.c, .cpp, .pde) in the 'src' subdirectory.
# 2. Set the PROJECT, ARDUINO_PATH, BOARD and SERIAL_PORT variables in 'ardmake.cfg',
#    or on the command line, e.g. `ardmake BOARD=nano` or `ardmake upload SERIAL_PORT=/dev/ttyACM0`.
# 3. Run `ardmake` to build the project, `ardmake upload` to upload it.
#
# Usage:
#  ardmake -v
#  ardmake --help
#  ardmake [options] [target ...] [VARIABLE=value ...]
#
# Targets:
# - all           check requirements, print info and build the HEX file (default).
# - boards        list boards.
# - info          print the values of the settings.
# - size          print the size of the compiled binary.
# - clean         remove the project build output.
# - distclean     remove the project build output and the Arduino core library.
# - requirements  check that the Arduino SDK files and board settings exist.
# - upload        upload the HEX file to the board.
# - monitor       print what is received on the serial port.

import argparse
import sys
from typing import List, Optional

import colorama

from ardmake.boards import Board, BoardsFile
from ardmake.builder import Builder
from ardmake.config import Config, is_assignment, CONFIG_FILENAME
from ardmake.monitor import Monitor
from ardmake.requirements import check_requirements
from ardmake.sdk import ArduinoSdk
from ardmake.serialport import SerialPort
from ardmake.size import SizeInfo, print_size_report
from ardmake.toolchain import ProcessRunner, Runner, Toolchain, ToolError
from ardmake.upload import upload
from ardmake.utils import BuildError, print_error

VERSION_MAJOR = 0
VERSION_MINOR = 1

TARGETS = ["all", "boards", "info", "size", "clean", "distclean",
           "requirements", "upload", "monitor"]
DEFAULT_TARGET = "all"

parser = argparse.ArgumentParser(
    description="Build Arduino projects with the AVR toolchain and upload them",
    epilog=f"Variables can be set in {CONFIG_FILENAME} or as VARIABLE=value arguments: "
           f"{', '.join(Config.variable_names())}")
parser.add_argument(
    "-C", "--directory", action="store", type=str, dest="directory", default=".",
    help="Project directory (default is the current directory)")
parser.add_argument(
    "-j", "--jobs", action="store", type=int, dest="jobs", default=1,
    help="Number of files compiled simultaneously (default is 1)")
parser.add_argument(
    "-B", "--always-make", action="store_true", dest="always_make",
    help="Rebuild all targets, even if up to date")
parser.add_argument(
    "-s", "--silent", action="store_true", dest="silent",
    help="Don't print commands before running them")
parser.add_argument(
    "-v", "--version", action="store_true", dest="version",
    help="Show version info")
parser.add_argument(
    action="store", type=str, dest="targets", nargs="*", metavar="target",
    help=f"Targets to make, in order: {', '.join(TARGETS)} (default is {DEFAULT_TARGET}), "
         f"or VARIABLE=value assignments")


class Make:
    """Class used to interpret command line arguments and make targets."""
    args: argparse.Namespace
    config: Config
    sdk: ArduinoSdk
    runner: Runner

    _boards_file: Optional[BoardsFile]
    _builder: Optional[Builder]

    def __init__(self, args: argparse.Namespace, config: Config, runner: Optional[Runner] = None):
        self.args = args
        self.config = config
        self.sdk = ArduinoSdk(config.resolve(config.arduino_path))
        self.runner = runner if runner else ProcessRunner(args.silent)
        self._boards_file = None
        self._builder = None

    @property
    def boards_file(self) -> Optional[BoardsFile]:
        if self._boards_file is None and self.sdk.boards_txt.exists():
            self._boards_file = BoardsFile.load(self.sdk.boards_txt)
        return self._boards_file

    @property
    def board(self) -> Optional[Board]:
        if self.boards_file is None:
            return None
        return self.boards_file.load_board(self.config.board, self.config.cpu or None)

    @property
    def builder(self) -> Builder:
        if self._builder is None:
            check_requirements(self.config, self.sdk, self.board)
            toolchain = Toolchain(self.config, self.sdk, self.board, self.runner)
            self._builder = Builder(self.config, toolchain, self.args.jobs, self.args.always_make)
        return self._builder

    def make(self, targets: List[str]) -> None:
        for target in targets:
            if target == "all":
                self.target_all()
            elif target == "boards":
                self.target_boards()
            elif target == "info":
                self.target_info()
            elif target == "size":
                self.target_size()
            elif target == "clean":
                self.target_clean(False)
            elif target == "distclean":
                self.target_clean(True)
            elif target == "requirements":
                check_requirements(self.config, self.sdk, self.board)
            elif target == "upload":
                upload(self.builder)
            elif target == "monitor":
                self.target_monitor()

    def target_all(self) -> None:
        check_requirements(self.config, self.sdk, self.board)
        self.target_info()
        hex_file = self.builder.build()
        print(f"Built {hex_file}")

    def target_boards(self) -> None:
        if self.boards_file is None:
            raise BuildError(f"boards.txt not found ({self.sdk.boards_txt}).")
        for board_id, name in self.boards_file.list_boards():
            print(f"{board_id} ({name})")

    def target_info(self) -> None:
        board = self.board

        def value(attr: str) -> str:
            return (getattr(board, attr) or "") if board else ""

        print("-----------------------------------------")
        print(f"Board:           {self.config.board} ({value('variant')})")
        print(f"MCU:             {value('mcu')} (speed: {value('f_cpu')})")
        print(f"Serial port:     {self.config.serial_port}")
        print(f"Upload protocol: {value('upload_protocol')}")
        print("-----------------------------------------")

    def target_size(self) -> None:
        builder = self.builder
        elf = builder.build_elf()
        output = builder.toolchain.size(elf)
        print(output, end="")
        print_size_report(SizeInfo.parse(output), builder.toolchain.board)

    def target_clean(self, everything: bool) -> None:
        # no requirements are needed to clean
        toolchain = Toolchain(self.config, self.sdk, self.board, self.runner)
        Builder(self.config, toolchain).clean(everything)

    def target_monitor(self) -> None:
        try:
            baud_rate = int(self.config.monitor_baud)
        except ValueError:
            raise BuildError(f"invalid baud rate '{self.config.monitor_baud}'")
        port = SerialPort(self.config.serial_port, baud_rate)
        print(f"Monitoring {port.filename} at {baud_rate} baud, press Ctrl+C to exit.", flush=True)
        Monitor(port, sys.stdout.buffer).run()


def print_version() -> None:
    print(f"ardmake v{VERSION_MAJOR}.{VERSION_MINOR}")


def main(argv: Optional[List[str]] = None, runner: Optional[Runner] = None) -> None:
    colorama.init()
    args = parser.parse_args(argv)
    if args.version:
        print_version()
        return

    assignments = [t for t in args.targets if is_assignment(t)]
    targets = [t for t in args.targets if not is_assignment(t)]
    for target in targets:
        if target not in TARGETS:
            parser.error(f"unknown target '{target}'")
    if not targets:
        targets = [DEFAULT_TARGET]

    try:
        config = Config.create(args.directory, assignments=assignments)
        Make(args, config, runner).make(targets)
    except ToolError as e:
        print_error(str(e))
        sys.exit(e.returncode)
    except BuildError as e:
        print_error(str(e))
        sys.exit(1)


if __name__ == '__main__':
    main()
