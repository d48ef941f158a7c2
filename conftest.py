"""
Pytest configuration file.

Puts the project root on the Python path so the flat modules (main,
schedule_process, schedule_html, utils) import the same way they do when the
server runs, and provides fixtures shared by the test modules.
"""
import os
import struct
import sys

import pandas as pd
import pytest

sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

SECTOR_SIZE = 512
END_OF_CHAIN = 0xFFFFFFFE
FREE_SECTOR = 0xFFFFFFFF
FAT_SECTOR = 0xFFFFFFFD


def _biff_record(opcode, data):
    return struct.pack("<HH", opcode, len(data)) + data


def _biff_bof(stream_type):
    # BIFF8 (0x0600); 0x0005 = workbook globals, 0x0010 = worksheet
    return _biff_record(0x0809, struct.pack("<HHHHII", 0x0600, stream_type, 0, 1997, 0, 6))


def _biff_label(row, col, text):
    encoded = text.encode("latin-1")
    return _biff_record(0x0204, struct.pack("<HHHHB", row, col, 0, len(text), 0) + encoded)


def _workbook_stream(rows, sheet_name="Sheet1"):
    name = sheet_name.encode("latin-1")

    def _globals(sheet_offset):
        boundsheet = struct.pack("<IBBBB", sheet_offset, 0, 0, len(name), 0) + name
        return _biff_bof(0x0005) + _biff_record(0x0085, boundsheet) + _biff_record(0x000A, b"")

    sheet_offset = len(_globals(0))
    cells = b"".join(
        _biff_label(rowx, colx, value)
        for rowx, row in enumerate(rows)
        for colx, value in enumerate(row)
    )
    sheet = _biff_bof(0x0010) + cells + _biff_record(0x000A, b"")
    return _globals(sheet_offset) + sheet


def _directory_entry(name, entry_type, child, start, size):
    encoded = name.encode("utf-16-le") + b"\0\0" if name else b""
    return struct.pack(
        "<64sHBBiii16sIQQiII",
        encoded, len(encoded), entry_type, 1, -1, -1, child, b"\0" * 16, 0, 0, 0, start, size, 0
    )


def build_xls(rows):
    """
    Build a minimal legacy .xls workbook (BIFF8 inside an OLE2 container).

    Every cell is written as a text label. The stream is padded to 4096 bytes
    so it is stored in regular sectors: sector 0 holds the FAT, sector 1 the
    directory, the rest the "Workbook" stream.
    """
    stream = _workbook_stream(rows)
    stream_size = max(4096, -(-len(stream) // SECTOR_SIZE) * SECTOR_SIZE)
    stream = stream.ljust(stream_size, b"\0")
    stream_sectors = stream_size // SECTOR_SIZE

    fat = [FAT_SECTOR, END_OF_CHAIN]
    fat += [2 + i + 1 for i in range(stream_sectors - 1)] + [END_OF_CHAIN]
    fat += [FREE_SECTOR] * (SECTOR_SIZE // 4 - len(fat))

    header = struct.pack(
        "<8s16sHHHHH6sIIIIIIIII",
        b"\xD0\xCF\x11\xE0\xA1\xB1\x1A\xE1", b"\0" * 16,
        0x003E, 0x0003, 0xFFFE, 9, 6, b"\0" * 6,
        0, 1, 1, 0, 4096, END_OF_CHAIN, 0, END_OF_CHAIN, 0
    )
    header += struct.pack("<109I", 0, *([FREE_SECTOR] * 108))

    directory = (
        _directory_entry("Root Entry", 5, 1, -2, 0)
        + _directory_entry("Workbook", 2, -1, 2, stream_size)
        + _directory_entry("", 0, -1, 0, 0) * 2
    )
    return header + struct.pack(f"<{len(fat)}I", *fat) + directory + stream


@pytest.fixture
def write_schedule(tmp_path):
    """
    Fixture returning a helper that writes rows to a real .xlsx file.

    Returns:
        Callable[[list, str], str]: write(records, filename) -> file path
    """
    def _write(records, filename="schedule.xlsx"):
        path = tmp_path / filename
        pd.DataFrame(records).to_excel(path, index=False)
        return str(path)

    return _write


@pytest.fixture
def xls_bytes():
    """
    Fixture providing a legacy .xls workbook with a header row and three shifts.

    Returns:
        bytes: Contents of the .xls file
    """
    return build_xls([
        ["Name", "Day", "Time", "Activity", "Location"],
        ["Alice", "Monday", "9am", "Shift A", "Lobby"],
        ["Bob", "Tuesday", "10am", "Shift B", "Kitchen"],
        ["Alice", "Friday", "2pm", "Shift C", "Hall"],
    ])
