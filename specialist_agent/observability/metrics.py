import json
import logging
import os
import threading
from typing import List, Optional

from specialist_agent.config import METRICS_PATH

logger = logging.getLogger(__name__)

# Latency history kept for percentile calculation
MAX_LATENCY_SAMPLES = 1000


class MetricsTracker:

    def __init__(self, path: Optional[str] = METRICS_PATH):

        self._path = path

        self._lock = threading.Lock()

        self._metrics = {

            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,

            "total_latency": 0.0,
            "avg_latency": 0.0,

            "latencies": []

        }

        self._load()


    def _load(self):

        if not self._path or not os.path.exists(self._path):
            return

        try:

            with open(self._path, "r") as f:

                data = json.load(f)

                if "latencies" not in data:
                    data["latencies"] = []

                self._metrics.update(data)

        except (OSError, ValueError, TypeError, AttributeError) as e:

            logger.warning(
                "Metrics file unreadable, starting fresh",
                extra={"path": self._path, "error": str(e)},
            )


    def _save(self):

        if not self._path:
            return

        try:

            directory = os.path.dirname(self._path)

            if directory:
                os.makedirs(directory, exist_ok=True)

            with open(self._path, "w") as f:

                json.dump(self._metrics, f, indent=2)

        except OSError as e:

            logger.warning(
                "Metrics save failed",
                extra={"path": self._path, "error": str(e)},
            )


    def record_success(self, latency: float):

        with self._lock:

            self._metrics["total_requests"] += 1

            self._metrics["successful_requests"] += 1

            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["total_requests"]
            )

            latencies = self._metrics["latencies"]

            latencies.append(latency)

            del latencies[:-MAX_LATENCY_SAMPLES]

            self._save()


    def record_failure(self):

        with self._lock:

            self._metrics["total_requests"] += 1

            self._metrics["failed_requests"] += 1

            self._save()


    def get_metrics(self) -> dict:

        with self._lock:

            metrics = {
                key: value
                for key, value in self._metrics.items()
                if key != "latencies"
            }

        metrics["p95_latency"] = self.get_latency_percentile(95)

        return metrics


    def get_latency_percentile(self, percentile: float) -> float:

        with self._lock:
            latencies: List[float] = list(self._metrics.get("latencies", []))

        if not latencies:
            return 0.0

        sorted_latencies = sorted(latencies)

        index = int(len(sorted_latencies) * percentile / 100)

        index = min(index, len(sorted_latencies) - 1)

        return sorted_latencies[index]
