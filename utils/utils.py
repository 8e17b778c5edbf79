"""
Utilities for the guardian system
Logging setup, performance monitoring and result persistence
"""

import json
import logging
import platform
import time
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import psutil

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetrics:
    operation: str
    duration_seconds: float
    cpu_percent: float
    memory_mb: float
    timestamp: float
    additional_data: Dict[str, Any] = field(default_factory=dict)


def setup_logging(log_level: str = "INFO", log_file: Optional[Path] = None):
    """Route all module loggers to a log file and the console"""
    if log_file is None:
        log_file = Path("logs") / f"guardians_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Clear existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )

    logger.info(f"Logging initialized. Log file: {log_file}")
    return logger


class PerformanceMonitor:
    """Collects per-operation timing, CPU and memory samples"""

    def __init__(self):
        self.metrics: List[PerformanceMetrics] = []
        self.process = psutil.Process()

    def start_operation(self, operation_name: str) -> 'OperationContext':
        return OperationContext(self, operation_name)

    def record_metric(self, metric: PerformanceMetrics):
        self.metrics.append(metric)

    def get_summary(self) -> Dict[str, Any]:
        if not self.metrics:
            return {
                'total_operations': 0,
                'total_duration': 0.0,
                'operations': {}
            }

        operation_groups = defaultdict(list)
        for metric in self.metrics:
            operation_groups[metric.operation].append(metric)

        summary = {
            'total_operations': len(self.metrics),
            'operations': {}
        }

        for op_name, metrics in operation_groups.items():
            durations = np.array([m.duration_seconds for m in metrics])
            cpu_usages = [m.cpu_percent for m in metrics if m.cpu_percent > 0]
            memory_usages = [m.memory_mb for m in metrics if m.memory_mb > 0]
            total = float(durations.sum())

            summary['operations'][op_name] = {
                'count': len(metrics),
                'total_duration': total,
                'avg_duration': float(durations.mean()),
                'min_duration': float(durations.min()),
                'max_duration': float(durations.max()),
                'std_duration': float(durations.std()) if len(durations) > 1 else 0.0,
                'avg_cpu_percent': float(np.mean(cpu_usages)) if cpu_usages else 0.0,
                'avg_memory_mb': float(np.mean(memory_usages)) if memory_usages else 0.0,
                'peak_memory_mb': max(memory_usages) if memory_usages else 0.0,
                'throughput_ops_per_sec': len(metrics) / total if total > 0 else 0.0
            }

        summary['total_duration'] = sum(
            op_data['total_duration'] for op_data in summary['operations'].values())
        return summary

    def save_metrics(self, filepath: Path):
        filepath.parent.mkdir(parents=True, exist_ok=True)

        metrics_data = {
            'metrics': [asdict(m) for m in self.metrics],
            'summary': self.get_summary(),
            'system_info': get_system_info(),
            'timestamp': datetime.now().isoformat()
        }

        with open(filepath, 'w') as f:
            json.dump(metrics_data, f, indent=2, default=str)


class OperationContext:
    """Context manager recording one PerformanceMetrics entry"""

    def __init__(self, monitor: PerformanceMonitor, operation_name: str):
        self.monitor = monitor
        self.operation_name = operation_name
        self.start_time = 0.0
        self.start_memory = 0.0

    def _sample(self):
        try:
            return self.monitor.process.cpu_percent(), self.monitor.process.memory_info().rss / 1024 / 1024
        except psutil.Error as e:
            logger.debug(f"Performance monitoring error: {e}")
            return 0.0, 0.0

    def __enter__(self):
        self.start_time = time.time()
        # First cpu_percent call only primes the counter
        _, self.start_memory = self._sample()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        end_cpu, end_memory = self._sample()

        self.monitor.record_metric(PerformanceMetrics(
            operation=self.operation_name,
            duration_seconds=duration,
            cpu_percent=end_cpu,
            memory_mb=max(self.start_memory, end_memory),
            timestamp=self.start_time,
            additional_data={'exception': exc_type is not None}
        ))


def get_system_info() -> Dict[str, Any]:
    info = {
        'platform': platform.platform(),
        'processor': platform.processor(),
        'python_version': platform.python_version(),
        'machine': platform.machine(),
        'system': platform.system(),
        'timestamp': datetime.now().isoformat()
    }

    vm = psutil.virtual_memory()
    info.update({
        'cpu_count_physical': psutil.cpu_count(logical=False),
        'cpu_count_logical': psutil.cpu_count(logical=True),
        'total_memory_gb': round(vm.total / 1024 / 1024 / 1024, 2),
        'available_memory_gb': round(vm.available / 1024 / 1024 / 1024, 2),
        'memory_percent_used': vm.percent,
    })
    return info


def _to_serializable(obj):
    if hasattr(obj, '__dataclass_fields__'):
        return _to_serializable(asdict(obj))
    if isinstance(obj, dict):
        return {str(k): _to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_serializable(item) for item in obj]
    if isinstance(obj, bool) or obj is None or isinstance(obj, (str, float)):
        return obj
    if isinstance(obj, int):
        # group elements do not fit JSON numbers in most readers
        return format(obj, 'X') if obj.bit_length() > 53 else obj
    if isinstance(obj, (np.integer, np.floating)):
        return obj.item()
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, Path):
        return str(obj)
    return str(obj)


def save_results(results: Dict[str, Any], filepath: Path):
    """Save results as JSON plus a human-readable summary beside it"""
    filepath.parent.mkdir(parents=True, exist_ok=True)

    enhanced_results = {
        'metadata': {
            'generated_at': datetime.now().isoformat(),
            'system_info': get_system_info(),
            'file_path': str(filepath)
        },
        'data': _to_serializable(results)
    }

    with open(filepath, 'w') as f:
        json.dump(enhanced_results, f, indent=2)

    summary_path = filepath.parent / f"{filepath.stem}_summary.txt"
    with open(summary_path, 'w') as f:
        f.write(create_results_summary(results))

    logger.info(f"Results saved to {filepath}")


def create_results_summary(results: Dict[str, Any]) -> str:
    summary = []
    summary.append("=" * 80)
    summary.append("GUARDIAN KEY CEREMONY AND DECRYPTION - RESULTS SUMMARY")
    summary.append("=" * 80)
    summary.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    summary.append("")

    ceremony = results.get('key_ceremony')
    if ceremony:
        summary.append("KEY CEREMONY:")
        for key in ('number_of_guardians', 'quorum', 'resolved_disputes'):
            if key in ceremony:
                summary.append(f"  {key}: {ceremony[key]}")
        if 'commitment_hash' in ceremony:
            summary.append(f"  commitment_hash: {format(ceremony['commitment_hash'], 'X')[:32]}...")
        summary.append("")

    if 'missing_guardians' in results:
        summary.append(f"MISSING GUARDIANS: {', '.join(results['missing_guardians']) or 'none'}")
        summary.append("")

    tally = results.get('tally')
    if tally:
        summary.append("ELECTION TALLY:")
        for contest_id, selections in tally.items():
            summary.append(f"  {contest_id}:")
            for selection_id, count in selections.items():
                summary.append(f"    {selection_id}: {count}")
        summary.append("")

    summary.append("=" * 80)
    return "\n".join(summary)


def create_performance_report(monitor: PerformanceMonitor) -> str:
    summary = monitor.get_summary()

    report = []
    report.append("=" * 80)
    report.append("GUARDIAN SYSTEM - PERFORMANCE REPORT")
    report.append("=" * 80)
    report.append(f"Total Operations: {summary.get('total_operations', 0)}")
    report.append(f"Total Duration: {summary.get('total_duration', 0):.3f}s")
    report.append("")

    if summary['operations']:
        report.append("OPERATION BREAKDOWN:")
        report.append("-" * 60)
        for op_name, op_data in summary['operations'].items():
            report.append(f"\n{op_name.upper()}:")
            report.append(f"  Executions: {op_data['count']}")
            report.append(f"  Average Time: {op_data['avg_duration']:.4f}s")
            report.append(f"  Std Deviation: {op_data['std_duration']:.4f}s")
            if op_data['peak_memory_mb'] > 0:
                report.append(f"  Peak Memory: {op_data['peak_memory_mb']:.1f} MB")
    else:
        report.append("No performance data available.")

    report.append("=" * 80)
    return "\n".join(report)
