"""Unit tests for runtime options and provider planning."""

from __future__ import annotations

import unittest

from ctc_asr.runtime import AcceleratorMode, RuntimeOptions, SpeedProfile, build_runtime_plan
from ctc_asr.runtime.plan import CPU_PROVIDER, NNAPI_PROVIDER, XNNPACK_PROVIDER


class TestRuntimeOptions(unittest.TestCase):
    """Option ids, fallbacks and ordering."""

    def test_unknown_ids_fall_back(self) -> None:
        opts = RuntimeOptions.from_ids("turbo", "gpu")
        self.assertIs(opts.speed_profile, SpeedProfile.BALANCED)
        self.assertIs(opts.accelerator_mode, AcceleratorMode.AUTO)

    def test_none_ids_fall_back(self) -> None:
        self.assertEqual(RuntimeOptions.from_ids(None, None), RuntimeOptions())

    def test_cache_fragment(self) -> None:
        opts = RuntimeOptions.from_ids("fast", "cpu")
        self.assertEqual(opts.cache_fragment(), "profile=fast;accelerator=cpu")

    def test_ordering_by_declaration(self) -> None:
        a = RuntimeOptions(SpeedProfile.BALANCED, AcceleratorMode.CPU)
        b = RuntimeOptions(SpeedProfile.FAST, AcceleratorMode.AUTO)
        c = RuntimeOptions(SpeedProfile.FAST, AcceleratorMode.CPU)
        self.assertEqual(sorted([c, b, a]), [a, b, c])

    def test_hashable(self) -> None:
        self.assertEqual(len({RuntimeOptions(), RuntimeOptions.from_ids("balanced", "auto")}), 1)


class TestRuntimePlan(unittest.TestCase):
    """Provider order, thread counts and summary text."""

    def test_cpu_mode_threads(self) -> None:
        expected = {
            "balanced": (4, 1, False),
            "fast": (6, 1, False),
            "quality": (4, 1, True),
        }
        for profile, (intra, inter, parallel) in expected.items():
            with self.subTest(profile=profile):
                plan = build_runtime_plan(RuntimeOptions.from_ids(profile, "cpu"), [CPU_PROVIDER])
                self.assertEqual(plan.provider_names, (CPU_PROVIDER,))
                self.assertEqual(plan.intra_op_threads, intra)
                self.assertEqual(plan.inter_op_threads, inter)
                self.assertEqual(plan.parallel_execution, parallel)

    def test_cpu_mode_summary(self) -> None:
        plan = build_runtime_plan(RuntimeOptions.from_ids("fast", "cpu"), [CPU_PROVIDER])
        self.assertEqual(plan.summary, "mode=cpu, profile=fast, requested=[CPU(available=True)]")

    def test_auto_mode_order_and_threads(self) -> None:
        plan = build_runtime_plan(RuntimeOptions(), [CPU_PROVIDER])
        self.assertEqual(plan.provider_names, (XNNPACK_PROVIDER, NNAPI_PROVIDER, CPU_PROVIDER))
        self.assertEqual((plan.intra_op_threads, plan.inter_op_threads), (1, 1))
        self.assertFalse(plan.parallel_execution)

    def test_auto_mode_summary(self) -> None:
        plan = build_runtime_plan(
            RuntimeOptions.from_ids("quality", "auto"),
            [XNNPACK_PROVIDER, CPU_PROVIDER],
        )
        self.assertEqual(
            plan.summary,
            "mode=auto, profile=quality, requested=["
            "XNNPACK(available=True,threads=4), "
            "NNAPI(available=False,disable_cpu=True,fp16=False), "
            "CPU(available=True)]",
        )

    def test_nnapi_fp16_follows_profile(self) -> None:
        for profile, fp16 in [("balanced", True), ("fast", True), ("quality", False)]:
            with self.subTest(profile=profile):
                plan = build_runtime_plan(RuntimeOptions.from_ids(profile, "auto"), [CPU_PROVIDER])
                nnapi = plan.providers[1]
                self.assertEqual(nnapi.options, {"cpu_disabled": True, "use_fp16": fp16})

    def test_ort_provider_options_are_strings(self) -> None:
        plan = build_runtime_plan(RuntimeOptions(), [CPU_PROVIDER])
        self.assertEqual(
            plan.ort_providers(),
            [
                (XNNPACK_PROVIDER, {"intra_op_num_threads": "4"}),
                (NNAPI_PROVIDER, {"cpu_disabled": "1", "use_fp16": "1"}),
                (CPU_PROVIDER, {}),
            ],
        )

    def test_empty_probe_assumes_cpu(self) -> None:
        plan = build_runtime_plan(RuntimeOptions.from_ids("balanced", "cpu"), [])
        self.assertTrue(plan.providers[0].available)


if __name__ == "__main__":
    unittest.main(argv=[""], exit=False, verbosity=2)
