import socket

from scan_engine import OutcomeStatus, ProbeOutcome, ScanMode, probe


class TestProbeAgainstLocalServices:
    def test_closed_port_is_closed_every_time(self, closed_port):
        first = probe("127.0.0.1", closed_port, ScanMode.FULL, 200)
        second = probe("127.0.0.1", closed_port, ScanMode.FULL, 200)

        assert first == second == ProbeOutcome.closed(closed_port)
        assert not first.is_open

    def test_silent_service_is_open_without_data_every_time(self, silent_server):
        first = probe("127.0.0.1", silent_server.port, ScanMode.FULL, 100)
        second = probe("127.0.0.1", silent_server.port, ScanMode.FULL, 100)

        assert first.status is OutcomeStatus.OPEN_NO_DATA
        assert second.status is OutcomeStatus.OPEN_NO_DATA
        assert first.banner == b""

    def test_full_mode_captures_banner(self, banner_server):
        outcome = probe("127.0.0.1", banner_server.port, ScanMode.FULL, 500)

        assert outcome.status is OutcomeStatus.OPEN_WITH_BANNER
        assert outcome.banner == b"hi\n"
        assert outcome.is_open

    def test_fast_mode_never_reads(self, banner_server):
        outcome = probe("127.0.0.1", banner_server.port, ScanMode.FAST, 500)

        assert outcome.status is OutcomeStatus.OPEN_NO_DATA
        assert outcome.banner == b""

    def test_mode_accepts_plain_strings(self, banner_server):
        outcome = probe("127.0.0.1", banner_server.port, "fast", 500)

        assert outcome.status is OutcomeStatus.OPEN_NO_DATA

    def test_service_label_only_for_open_ports(self, banner_server, closed_port):
        lookup = lambda port: "TEST"

        opened = probe("127.0.0.1", banner_server.port, ScanMode.FAST, 500, service_lookup=lookup)
        closed = probe("127.0.0.1", closed_port, ScanMode.FAST, 500, service_lookup=lookup)

        assert opened.service == "TEST"
        assert closed.service == ""


def _fake_socket(mocker, connect_result=0, recv=None):
    fake = mocker.MagicMock()
    fake.__enter__.return_value = fake
    fake.__exit__.return_value = False
    fake.connect_ex.return_value = connect_result
    if isinstance(recv, BaseException):
        fake.recv.side_effect = recv
    else:
        fake.recv.return_value = recv if recv is not None else b""
    mocker.patch("scan_engine.probe.socket.socket", return_value=fake)
    return fake


class TestProbeSocketHandling:
    def test_socket_creation_failure_is_not_fatal(self, mocker):
        mocker.patch("scan_engine.probe.socket.socket", side_effect=OSError("Too many open files"))

        outcome = probe("10.0.0.1", 22, ScanMode.FULL, 200)

        assert outcome == ProbeOutcome.closed(22)

    def test_refused_connect_releases_socket_once(self, mocker):
        fake = _fake_socket(mocker, connect_result=111)

        outcome = probe("10.0.0.1", 22, ScanMode.FULL, 200)

        assert outcome.status is OutcomeStatus.CLOSED
        assert fake.__exit__.call_count == 1
        fake.recv.assert_not_called()

    def test_connect_exception_is_closed(self, mocker):
        fake = _fake_socket(mocker)
        fake.connect_ex.side_effect = socket.timeout("timed out")

        outcome = probe("10.0.0.1", 22, ScanMode.FULL, 200)

        assert outcome.status is OutcomeStatus.CLOSED
        assert fake.__exit__.call_count == 1

    def test_timeout_is_applied_before_connect(self, mocker):
        fake = _fake_socket(mocker, connect_result=111)

        probe("10.0.0.1", 22, ScanMode.FULL, 250)

        fake.settimeout.assert_called_once_with(0.25)
        fake.connect_ex.assert_called_once_with(("10.0.0.1", 22))

    def test_banner_is_bounded_by_max_bytes(self, mocker):
        fake = _fake_socket(mocker, recv=b"A" * 2000)

        outcome = probe("10.0.0.1", 25, ScanMode.FULL, 200, banner_max_bytes=512)

        fake.recv.assert_called_once_with(512)
        assert outcome.status is OutcomeStatus.OPEN_WITH_BANNER
        assert outcome.banner == b"A" * 512
        assert outcome.service == "SMTP"
        assert fake.__exit__.call_count == 1

    def test_read_timeout_is_open_without_data(self, mocker):
        _fake_socket(mocker, recv=socket.timeout("timed out"))

        outcome = probe("10.0.0.1", 80, ScanMode.FULL, 200)

        assert outcome == ProbeOutcome.open_no_data(80, "HTTP")

    def test_read_reset_is_open_without_data(self, mocker):
        _fake_socket(mocker, recv=ConnectionResetError("reset"))

        outcome = probe("10.0.0.1", 80, ScanMode.FULL, 200)

        assert outcome.status is OutcomeStatus.OPEN_NO_DATA

    def test_single_connection_attempt(self, mocker):
        fake = _fake_socket(mocker, connect_result=110)

        probe("10.0.0.1", 80, ScanMode.FULL, 200)

        assert fake.connect_ex.call_count == 1
