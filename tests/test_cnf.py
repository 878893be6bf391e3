import io
import unittest

from cnf import CNF


class CNFTests(unittest.TestCase):
    def test_variables_are_allocated_monotonically(self):
        cnf = CNF()
        self.assertEqual([cnf.new_var() for _ in range(3)], [1, 2, 3])
        self.assertEqual(cnf.num_vars, 3)

    def test_empty_clause_is_rejected(self):
        cnf = CNF()
        cnf.new_var()
        with self.assertRaises(ValueError):
            cnf.add_clause([])

    def test_unallocated_literal_is_rejected(self):
        cnf = CNF()
        cnf.new_var()
        with self.assertRaises(ValueError):
            cnf.add_clause([1, -2])
        with self.assertRaises(ValueError):
            cnf.add_clause([0])
        self.assertEqual(cnf.clauses, [])

    def test_contradiction_pair(self):
        cnf = CNF()
        cnf.new_var()
        dummy = cnf.add_contradiction()
        self.assertEqual(dummy, 2)
        self.assertEqual(cnf.clauses, [[2], [-2]])

    def test_dimacs_text_preserves_clause_order(self):
        cnf = CNF()
        a, b, c = cnf.new_var(), cnf.new_var(), cnf.new_var()
        cnf.add_clause([a, -b])
        cnf.add_clause([c])
        cnf.add_clause([-a, b, -c])
        expected = "p cnf 3 3\n1 -2 0\n3 0\n-1 2 -3 0\n"
        self.assertEqual(cnf.to_dimacs(), expected)
        buf = io.StringIO()
        cnf.write_dimacs(buf)
        self.assertEqual(buf.getvalue(), expected)

    def test_stream_and_string_output_agree_on_empty_formula(self):
        cnf = CNF()
        cnf.new_var()
        buf = io.StringIO()
        cnf.write_dimacs(buf)
        self.assertEqual(buf.getvalue(), "p cnf 1 0\n")
        self.assertEqual(buf.getvalue(), cnf.to_dimacs())


if __name__ == "__main__":
    unittest.main()
