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
import signal
from typing import BinaryIO, Optional

from ardmake.serialport import SerialPort


class Monitor:
    """Copies everything received on the serial port to an output stream until interrupted."""
    port: SerialPort
    output: BinaryIO
    running: bool

    def __init__(self, port: SerialPort, output: BinaryIO):
        self.port = port
        self.output = output
        self.running = False

    def sigint_handler(self, signum, frame):
        self.running = False

    def run(self, max_reads: Optional[int] = None) -> None:
        self.port.connect()
        previous_handler = signal.signal(signal.SIGINT, self.sigint_handler)
        self.running = True
        reads = 0
        try:
            while self.running and (max_reads is None or reads < max_reads):
                data = self.port.read()
                reads += 1
                if data:
                    self.output.write(data)
                    self.output.flush()
        finally:
            signal.signal(signal.SIGINT, previous_handler)
            self.port.disconnect()
