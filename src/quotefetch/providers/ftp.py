"""Minimal anonymous FTP retrieval over raw asyncio streams.

Only what the Nasdaq symbol directory needs: log in anonymously, change
directory, enter passive mode and retrieve one file. The data port is
taken from the PASV reply ``227 Entering Passive Mode (h1,h2,h3,h4,p1,p2)``
and the data connection goes to the control host on that port.
"""

from __future__ import annotations

import asyncio
import logging

from quotefetch.core.exceptions import NetworkError, PayloadError

logger = logging.getLogger(__name__)

_ENCODING = "latin-1"


def parse_pasv_reply(text: str) -> int:
    """Extract the data port from a PASV reply.

    >>> parse_pasv_reply("227 Entering Passive Mode (206,200,251,105,195,127).")
    50047

    Raises
    ------
    PayloadError
        If the reply has no ``(...)`` group or the last two fields are not
        port bytes.
    """
    start, end = text.find("("), text.find(")")
    if start < 0 or end < start:
        raise PayloadError(
            f"No address group in PASV reply: {text!r}",
            context={"reason": "pasv"},
        )
    fields = text[start + 1:end].split(",")
    if len(fields) != 6:
        raise PayloadError(
            f"Expected 6 fields in PASV reply, got {len(fields)}: {text!r}",
            context={"reason": "pasv"},
        )
    try:
        p1, p2 = int(fields[4]), int(fields[5])
    except ValueError as e:
        raise PayloadError(
            f"Non-numeric port in PASV reply: {text!r}",
            context={"reason": "pasv"},
        ) from e
    if not (0 <= p1 <= 255 and 0 <= p2 <= 255):
        raise PayloadError(
            f"Port byte out of range in PASV reply: {text!r}",
            context={"reason": "pasv"},
        )
    return p1 * 256 + p2


class AnonymousFtpDirectory:
    """Retrieves one file by anonymous FTP. Implements SymbolDirectoryProvider.

    Parameters
    ----------
    host : str
        FTP server host name.
    port : int
        Control port. Default: 21.
    directory : str
        Directory to ``CWD`` into.
    filename : str
        File to ``RETR``.
    timeout : float
        Seconds allowed for the whole exchange. Default: 5.0.
    """

    def __init__(
        self,
        host: str,
        directory: str,
        filename: str,
        port: int = 21,
        timeout: float = 5.0,
    ) -> None:
        self._host = host
        self._port = port
        self._directory = directory
        self._filename = filename
        self._timeout = timeout

    @property
    def address(self) -> str:
        return f"{self._host}:{self._port}"

    async def fetch_directory(self) -> str:
        """Download the file and return it decoded as text.

        Raises
        ------
        NetworkError
            Connection failure, timeout, or a 4xx/5xx reply.
        PayloadError
            Unparseable PASV reply.
        """
        try:
            async with asyncio.timeout(self._timeout):
                data = await self._retrieve()
        except TimeoutError as e:
            raise NetworkError(
                f"FTP exchange with {self.address} timed out after {self._timeout}s",
                context={"url": self.address, "status_code": None},
            ) from e
        except OSError as e:
            raise NetworkError(
                f"FTP connection to {self.address} failed: {e}",
                context={"url": self.address, "status_code": None},
            ) from e
        logger.info("Retrieved %d bytes of %s from %s", len(data), self._filename, self._host)
        return data.decode(_ENCODING)

    async def _retrieve(self) -> bytes:
        reader, writer = await asyncio.open_connection(self._host, self._port)
        try:
            await self._expect(reader, "greeting")
            await self._command(reader, writer, "USER anonymous")
            await self._command(reader, writer, "PASS anonymous")
            await self._command(reader, writer, f"CWD {self._directory}")
            _, pasv = await self._command(reader, writer, "PASV")
            data_port = parse_pasv_reply(pasv)
            logger.debug("Passive data port %d on %s", data_port, self._host)

            data_reader, data_writer = await asyncio.open_connection(self._host, data_port)
            try:
                await self._command(reader, writer, f"RETR {self._filename}")
                data = await data_reader.read()
            finally:
                data_writer.close()
                await data_writer.wait_closed()

            await self._expect(reader, f"RETR {self._filename}")
            writer.write(b"QUIT\r\n")
            await writer.drain()
            return data
        finally:
            writer.close()
            await writer.wait_closed()

    async def _command(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        line: str,
    ) -> tuple[int, str]:
        shown = "PASS ****" if line.startswith("PASS ") else line
        logger.debug("FTP > %s", shown)
        writer.write(line.encode(_ENCODING) + b"\r\n")
        await writer.drain()
        return await self._expect(reader, shown)

    async def _expect(self, reader: asyncio.StreamReader, what: str) -> tuple[int, str]:
        code, text = await _read_reply(reader)
        logger.debug("FTP < %s", text)
        if code >= 400:
            raise NetworkError(
                f"FTP {what} failed: {text}",
                context={"url": self.address, "status_code": code},
            )
        return code, text


async def _read_reply(reader: asyncio.StreamReader) -> tuple[int, str]:
    """Read one (possibly multi-line) reply and return ``(code, text)``.

    A multi-line reply starts with ``NNN-`` and ends with a line that
    starts with the same code followed by a space.
    """
    first = await _read_line(reader)
    code = first[:3]
    if not code.isdigit():
        raise PayloadError(
            f"Malformed FTP reply: {first!r}",
            context={"reason": "reply"},
        )
    lines = [first]
    if first[3:4] == "-":
        while True:
            line = await _read_line(reader)
            lines.append(line)
            if line[:3] == code and line[3:4] == " ":
                break
    return int(code), "\n".join(lines)


async def _read_line(reader: asyncio.StreamReader) -> str:
    raw = await reader.readline()
    if not raw:
        raise NetworkError(
            "FTP control connection closed unexpectedly",
            context={"status_code": None},
        )
    return raw.decode(_ENCODING).rstrip("\r\n")
