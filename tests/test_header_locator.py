from talent_import.domain.imports.header_locator import (
    detect_header_row,
    header_rejection_reason,
    locate_header_row,
)
from talent_import.domain.imports.processors.tabular_reader import Sheet


def test_header_found_below_preamble_rows():
    sheet = Sheet(rows=[
        ["Candidate Export", "", "", ""],
        ["Generated on 2024-03-01", "", "", ""],
        ["First Name", "Last Name", "Email", "Phone"],
        ["Ada", "Lovelace", "ada@example.com", "555-0100"],
    ])

    assert detect_header_row(sheet) == 2
    assert locate_header_row(sheet) == (2, True)


def test_first_row_is_header_when_it_qualifies():
    sheet = Sheet(rows=[
        ["Company Name", "Industry", "Website"],
        ["Acme", "Manufacturing", "acme.com"],
    ])

    assert detect_header_row(sheet) == 0


def test_rows_with_dates_or_numbers_are_not_headers():
    assert header_rejection_reason(["01/15/2024", "Engineer", "Acme"]) == "data_values"
    assert header_rejection_reason(["Engineer", "Acme", "42"]) == "data_values"
    assert header_rejection_reason(["Engineer", "Acme", "-3.5"]) == "data_values"


def test_sparse_and_repetitive_rows_are_not_headers():
    assert header_rejection_reason(["Report", "", ""]) == "too_sparse"
    assert header_rejection_reason(["x", "x", "x", "y"]) == "repeated_values"
    assert header_rejection_reason(["First Name", "Last Name", "Email"]) is None


def test_data_row_above_real_header_is_skipped():
    sheet = Sheet(rows=[
        ["03/01/2024", "Weekly", "Summary"],
        ["Title", "Client", "Location"],
        ["Engineer", "Acme", "Remote"],
    ])

    assert detect_header_row(sheet) == 1


def test_falls_back_to_first_row_when_nothing_qualifies():
    sheet = Sheet(rows=[
        ["1", "2", "3"],
        ["4", "5", "6"],
    ])

    assert locate_header_row(sheet) == (0, False)


def test_scan_is_limited_to_the_configured_window():
    preamble = [["note", "", ""] for _ in range(5)]
    sheet = Sheet(rows=preamble + [["Name", "City", "Country"]])

    assert locate_header_row(sheet, max_rows=3) == (0, False)
    assert locate_header_row(sheet, max_rows=10) == (5, True)


def test_empty_sheet_defaults_to_row_zero():
    assert locate_header_row(Sheet(rows=[])) == (0, False)
