import unittest

from dealer_dashboard.pipeline.tabular import UnsupportedInputError, is_blank_row, parse_csv


class ParseCsvTests(unittest.TestCase):
    def test_splits_lines_and_trims_fields(self):
        rows = parse_csv("a, b ,c\n 1,2 , 3")
        self.assertEqual(rows, [["a", "b", "c"], ["1", "2", "3"]])

    def test_quoted_field_keeps_delimiter_and_drops_quotes(self):
        rows = parse_csv('Acme,"TES, Gold",North,42')
        self.assertEqual(rows, [["Acme", "TES, Gold", "North", "42"]])

    def test_empty_input_is_single_empty_field(self):
        self.assertEqual(parse_csv(""), [[""]])

    def test_trailing_newline_yields_degenerate_row(self):
        rows = parse_csv("a,b\n")
        self.assertEqual(rows[-1], [""])
        self.assertTrue(is_blank_row(rows[-1]))

    def test_custom_delimiter(self):
        self.assertEqual(parse_csv("a;b;c", delimiter=";"), [["a", "b", "c"]])

    def test_escaped_quote_is_rejected(self):
        with self.assertRaises(UnsupportedInputError) as ctx:
            parse_csv('x\n"say ""hi""",2')
        self.assertIn("line 2", str(ctx.exception))

    def test_blank_row(self):
        self.assertTrue(is_blank_row(["", "", ""]))
        self.assertFalse(is_blank_row(["", "x"]))


if __name__ == "__main__":
    unittest.main()
