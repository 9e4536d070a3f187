import unittest

from conjpipe.config import SamplerSettings, AnalysisSettings
from conjpipe.presets import EXAMPLES, get_example
from conjpipe.ppl import ModelDescription, compile_model


class TestSamplerSettings(unittest.TestCase):

    def test_defaults(self):
        s = SamplerSettings()
        self.assertEqual((s.num_samples, s.burn_in, s.num_chains, s.thin), (5000, 1000, 4, 1))
        self.assertIsNone(s.proposal_std)
        self.assertIsNone(s.seed)

    def test_validation(self):
        for kwargs in ({"num_samples": 0}, {"burn_in": -1}, {"num_chains": 0}, {"thin": 0}, {"proposal_std": 0.0}):
            with self.assertRaises(ValueError):
                SamplerSettings(**kwargs)

    def test_from_mapping(self):
        s = SamplerSettings.from_mapping({"num_samples": 10, "seed": 3})
        self.assertEqual(s.num_samples, 10)
        self.assertEqual(s.as_dict()["seed"], 3)
        with self.assertRaises(ValueError):
            SamplerSettings.from_mapping({"draws": 10})


class TestAnalysisSettings(unittest.TestCase):

    def test_defaults(self):
        a = AnalysisSettings()
        self.assertEqual(a.level, 0.95)
        self.assertEqual(a.interval_method, "equal_tailed")
        self.assertEqual(a.backend, "metropolis")
        self.assertIsInstance(a.sampler, SamplerSettings)

    def test_sampler_mapping_is_converted(self):
        a = AnalysisSettings(sampler={"num_chains": 2})
        self.assertEqual(a.sampler.num_chains, 2)

    def test_validation(self):
        with self.assertRaises(ValueError):
            AnalysisSettings(level=1.0)
        with self.assertRaises(ValueError):
            AnalysisSettings(interval_method="central")
        with self.assertRaises(ValueError):
            AnalysisSettings(num_predictive=0)


class TestPresets(unittest.TestCase):

    def test_every_example_compiles(self):
        for name in EXAMPLES:
            description = get_example(name)
            self.assertIsInstance(description, ModelDescription)
            compiled = compile_model(description)
            self.assertGreater(compiled.data.size, 0)
            compiled.conjugate()

    def test_examples_are_fresh_copies(self):
        a = get_example("beta_binomial")
        a.data.append(3)
        self.assertEqual(get_example("beta_binomial").data, [7])

    def test_unknown_example(self):
        with self.assertRaises(KeyError):
            get_example("gamma_gamma")


if __name__ == "__main__":
    unittest.main()
