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
import io

import pytest

from ardmake.monitor import Monitor
from ardmake.serialport import SerialPort, SerialPortError
from ardmake.upload import upload
from tests.conftest import FakeSerial

pytestmark = pytest.mark.usefixtures("fake_serial")


def test_connect_error():
    port = SerialPort("/dev/missing")
    with pytest.raises(SerialPortError, match="could not open serial port /dev/missing"):
        port.connect()
    assert not port.is_connected()


def test_reset_pulses_dtr():
    port = SerialPort("/dev/ttyUSB0")
    port.reset()
    ser = FakeSerial.instances[0]
    assert ser.port == "/dev/ttyUSB0"
    assert ser.dtr_changes == [False, True]
    assert ser.closed
    assert not port.is_connected()


def test_upload(builder, runner, config):
    hex_file = upload(builder)
    assert hex_file == config.hex_path
    assert FakeSerial.instances[0].dtr_changes == [False, True]
    assert runner.commands[-1][0] == "avrdude"
    assert runner.commands[-1][-1] == f"-Uflash:w:{config.hex_path}:i"


def test_upload_port_error(builder, runner, config):
    config.serial_port = "/dev/missing"
    with pytest.raises(SerialPortError):
        upload(builder)
    # the HEX file is built but never flashed
    assert config.hex_path.exists()
    assert "avrdude" not in runner.tools()


def test_monitor_copies_data():
    FakeSerial.incoming = [b"hello ", b"", b"world\n"]
    output = io.BytesIO()
    port = SerialPort("/dev/ttyUSB0", 115200)
    Monitor(port, output).run(max_reads=5)
    assert output.getvalue() == b"hello world\n"
    ser = FakeSerial.instances[0]
    assert ser.baudrate == 115200
    assert ser.closed


def test_monitor_stops_on_interrupt(monkeypatch):
    output = io.BytesIO()
    monitor = Monitor(SerialPort("/dev/ttyUSB0"), output)
    FakeSerial.incoming = [b"a", b"b"]
    original_read = SerialPort.read

    def read_and_interrupt(self):
        data = original_read(self)
        monitor.sigint_handler(None, None)
        return data

    monkeypatch.setattr(SerialPort, "read", read_and_interrupt)
    monitor.run()
    assert output.getvalue() == b"a"
    assert not monitor.port.is_connected()
