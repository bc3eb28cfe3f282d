from storyreel import metrics


def test_snapshot_summarizes_runs_and_stages():
    metrics.inc_counter("requests.pipeline", 4)
    metrics.inc_counter("pipeline.completed", 3)
    for ms in (100.0, 300.0, 200.0):
        metrics.record_latency("SYNTHESIZING_VIDEO", ms)
    metrics.record_error("DOWNLOADING", "VideoDownloadFailed", "403 Forbidden", job_id="job-9")

    snap = metrics.get_snapshot()

    assert snap["pipeline"] == {"started": 4, "completed": 3, "success_rate": 75.0}
    video = snap["stage_latency_ms"]["SYNTHESIZING_VIDEO"]
    assert video["count"] == 3
    assert video["p50"] == 200.0
    assert video["max"] == 300.0
    assert snap["failures_by_stage"] == {"DOWNLOADING": 1}
    assert snap["recent_errors"][0]["job_id"] == "job-9"


def test_samples_and_failures_are_capped():
    for i in range(metrics.MAX_SAMPLES + 20):
        metrics.record_latency("DOWNLOADING", float(i))
    for i in range(metrics.MAX_ERRORS + 5):
        metrics.record_error("DOWNLOADING", "X", f"boom {i}")

    snap = metrics.get_snapshot()

    assert snap["stage_latency_ms"]["DOWNLOADING"]["count"] == metrics.MAX_SAMPLES
    assert snap["failures_by_stage"]["DOWNLOADING"] == metrics.MAX_ERRORS
    assert len(snap["recent_errors"]) == 10
    assert snap["recent_errors"][-1]["message"] == f"boom {metrics.MAX_ERRORS + 4}"


def test_success_rate_is_none_before_any_run():
    assert metrics.get_snapshot()["pipeline"]["success_rate"] is None
