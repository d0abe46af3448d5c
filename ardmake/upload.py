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

from ardmake.builder import Builder
from ardmake.serialport import SerialPort


def upload(builder: Builder) -> Path:
    """Build the HEX file if needed, reset the board and flash it with avrdude."""
    hex_file = builder.build()
    port = SerialPort(builder.config.serial_port)
    print(f"Resetting board on {port.filename}")
    port.reset()
    builder.toolchain.flash(hex_file)
    return hex_file
