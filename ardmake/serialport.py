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
import time
from typing import Optional

import serial
from serial import Serial, SerialException

from ardmake.utils import BuildError

# time DTR is held low to reset the board
RESET_PULSE_TIME = 0.1


class SerialPortError(BuildError):
    pass


class SerialPort:
    """Serial link to the board. Uses pyserial."""
    filename: str
    baud_rate: int
    serial: Optional[Serial]

    DEFAULT_BAUD_RATE = 9600

    def __init__(self, filename: str, baud_rate: int = DEFAULT_BAUD_RATE):
        self.filename = filename
        self.baud_rate = baud_rate
        self.serial = None

    def connect(self) -> None:
        try:
            self.serial = Serial(
                port=self.filename,
                baudrate=self.baud_rate,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                bytesize=serial.EIGHTBITS,
                timeout=0.1,
            )
        except SerialException as e:
            raise SerialPortError(f"could not open serial port {self.filename}") from e

    def disconnect(self) -> None:
        if self.is_connected():
            self.serial.close()
            self.serial = None

    def is_connected(self) -> bool:
        return self.serial is not None

    def reset(self) -> None:
        """Reset the board by pulsing DTR, the same as closing the port with
        hang up on close enabled. The bootloader then runs for a short time."""
        self.connect()
        try:
            self.serial.dtr = False
            time.sleep(RESET_PULSE_TIME)
            self.serial.dtr = True
        except SerialException as e:
            raise SerialPortError(f"could not reset board on {self.filename}") from e
        finally:
            self.disconnect()

    def read(self) -> bytes:
        """Read available bytes, returns an empty result on timeout."""
        try:
            return self.serial.read(max(1, self.serial.in_waiting))
        except SerialException as e:
            raise SerialPortError(f"could not read from {self.filename}") from e
