import json

from utils.utils import PerformanceMetrics, PerformanceMonitor, create_performance_report, save_results


def test_monitor_summarizes_operations():
    monitor = PerformanceMonitor()
    for _ in range(3):
        with monitor.start_operation("round_1"):
            sum(range(1000))
    with monitor.start_operation("round_2"):
        pass

    summary = monitor.get_summary()
    assert summary['total_operations'] == 4
    assert summary['operations']['round_1']['count'] == 3
    assert summary['operations']['round_2']['std_duration'] == 0.0
    assert "ROUND_1" in create_performance_report(monitor)


def test_empty_monitor():
    assert PerformanceMonitor().get_summary()['total_operations'] == 0


def test_save_results_writes_json_and_summary(tmp_path):
    path = tmp_path / "out" / "report.json"
    save_results({
        'key_ceremony': {'number_of_guardians': 5, 'quorum': 3, 'commitment_hash': 2 ** 200},
        'tally': {'contest-0': {'candidate-0': 2}},
        'missing_guardians': ['guardian-4'],
    }, path)

    data = json.loads(path.read_text())
    assert data['data']['tally'] == {'contest-0': {'candidate-0': 2}}
    assert data['data']['key_ceremony']['commitment_hash'] == format(2 ** 200, 'X')
    summary = (tmp_path / "out" / "report_summary.txt").read_text()
    assert "guardian-4" in summary
    assert "candidate-0: 2" in summary


def test_save_metrics_writes_raw_metrics_and_summary(tmp_path):
    monitor = PerformanceMonitor()
    with monitor.start_operation("key_ceremony_round_1_public_keys"):
        pass
    monitor.record_metric(PerformanceMetrics("decrypt_tally", 0.25, 0.0, 10.0, 0.0, {"selections": 4}))

    path = tmp_path / "metrics" / "performance_metrics.json"
    monitor.save_metrics(path)

    data = json.loads(path.read_text())
    assert [m['operation'] for m in data['metrics']] == ["key_ceremony_round_1_public_keys", "decrypt_tally"]
    assert data['summary']['total_operations'] == 2
    assert 'timestamp' in data and 'system_info' in data
