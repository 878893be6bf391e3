import io
import json
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from tempfile import TemporaryDirectory

from certificates import save_certificate, verify_selection
from coverage_table import RunnerParams


class VerifySelectionTests(unittest.TestCase):
    def setUp(self):
        self.params = RunnerParams(k=4, prime=17)

    def test_reports_count_range_and_prime_multiples(self):
        problems = verify_selection(self.params, [1, 1, 17, 50])
        text = " ".join(problems)
        self.assertIn("duplicate", text)
        self.assertIn("expected 4 velocities", text)
        self.assertIn("multiple of 17", text)
        self.assertIn("outside 1..42", text)

    def test_reports_divisor_bound(self):
        # Multiples of 5 cover every time here; only the divisor bound fails.
        problems = verify_selection(self.params, [5, 10, 15, 20])
        self.assertEqual(problems, ["4 velocities divisible by 5 (limit 2)"])

    def test_uncovered_time_matches_relation(self):
        # Q=34: velocity 1 is near zero at every time except t=17.
        problems = verify_selection(RunnerParams(k=1, prime=17), [1])
        self.assertEqual(problems, ["1 uncovered times (first t=17)"])


class CertificateTests(unittest.TestCase):
    def test_save_certificate_includes_metadata(self):
        calls = []

        def verifier(params, sol):
            calls.append((params.k, list(sol)))
            return True

        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cert.json"
            save_certificate(
                RunnerParams(k=4, prime=17),
                "SATISFIABLE",
                [1, 2, 3, 4],
                path,
                runtime=1.5,
                stats={"candidates": 40, "survivors": 30},
                verify_fn=verifier,
                backend="pysat",
                cnf_path=Path("k4_p17.cnf"),
            )
            data = json.loads(path.read_text())
        self.assertEqual(calls, [(4, [1, 2, 3, 4])])
        self.assertEqual(data["k"], 4)
        self.assertEqual(data["prime"], 17)
        self.assertEqual(data["runner_count"], 5)
        self.assertEqual(data["period"], 85)
        self.assertEqual(data["verdict"], "SATISFIABLE")
        self.assertEqual(data["runtime_seconds"], 1.5)
        self.assertEqual(data["stats"]["survivors"], 30)
        self.assertEqual(data["cnf"], "k4_p17.cnf")
        self.assertTrue(data["verified_cover"])

    def test_unsolved_case_has_no_verification(self):
        with TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "cert.json"
            save_certificate(
                RunnerParams(k=4, prime=17), None, [], path, runtime=None, stats={}
            )
            data = json.loads(path.read_text())
        self.assertIsNone(data["verdict"])
        self.assertIsNone(data["verified_cover"])
        self.assertIsNone(data["cnf"])

    def test_plot_loader_reads_case_certificates(self):
        import plot_certificates

        with TemporaryDirectory() as tmpdir:
            for prime, verdict in ((19, None), (17, "UNSATISFIABLE")):
                save_certificate(
                    RunnerParams(k=4, prime=prime),
                    verdict,
                    [],
                    Path(tmpdir) / f"case_k4_p{prime}.json",
                    runtime=0.25,
                    stats={"candidates": 40, "survivors": 31},
                )
            certs = plot_certificates.load_certificates(Path(tmpdir))
            self.assertEqual(plot_certificates.load_certificates(Path(tmpdir), k=5), [])
        self.assertEqual([c.prime for c in certs], [17, 19])
        self.assertEqual(certs[0].verdict, "UNSATISFIABLE")
        self.assertEqual(certs[1].stats["survivors"], 31)
        buf = io.StringIO()
        with redirect_stdout(buf):
            plot_certificates.print_summary(certs)
        self.assertIn("1 UNSAT, 1 not solved", buf.getvalue())


if __name__ == "__main__":
    unittest.main()
