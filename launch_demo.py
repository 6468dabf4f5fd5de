"""Launch the tablekit explorer on a generated incident log."""

import numpy as np
import pandas as pd

import tablekit as tk

SEED = 42
N_ROWS = 500

SERVICES = ["api", "billing", "search", "auth", "storage"]
ENVIRONMENTS = ["prod", "staging", "dev"]
STATUSES = ["open", "closed"]
SEVERITIES = ["low", "medium", "high", "critical"]

rng = np.random.default_rng(SEED)
incidents = pd.DataFrame({
    "id": np.arange(1, N_ROWS + 1),
    "service": rng.choice(SERVICES, N_ROWS),
    "environment": rng.choice(ENVIRONMENTS, N_ROWS, p=[0.5, 0.3, 0.2]),
    "status": rng.choice(STATUSES, N_ROWS),
    "severity": rng.choice(SEVERITIES, N_ROWS, p=[0.4, 0.3, 0.2, 0.1]),
    "errors": rng.poisson(12, N_ROWS),
    "latency_ms": rng.gamma(2.0, 80.0, N_ROWS).round(1),
    "opened": pd.Timestamp("2024-01-01") + pd.to_timedelta(rng.integers(0, 90 * 24, N_ROWS), unit="h"),
})

config = {
    "id": "incidents",
    "rowIdField": "id",
    "pageLength": 25,
    "columns": [
        {"data": "id", "title": "ID"},
        {"data": "service", "editable": True, "editType": "select", "editOptions": SERVICES},
        {"data": "environment"},
        {"data": "status", "render": "status_badge"},
        {"data": "severity", "render": "severity_badge"},
        {"data": "errors", "render": "number", "editable": True, "editType": "number", "editMin": 0},
        {"data": "latency_ms", "title": "Latency (ms)", "render": "number"},
        {"data": "opened", "render": "timestamp"},
    ],
    "selectionConfig": {"enabled": True, "bulkActions": ["delete", "export"]},
    "searchConfig": {"enableRegex": True},
    "footerConfig": {
        "columns": [
            {"columnIndex": 0, "aggregation": "count", "label": "Rows"},
            {"columnIndex": 5, "aggregation": "sum", "label": "Total"},
            {"columnIndex": 6, "aggregation": "average", "decimals": 1, "suffix": " ms"},
        ],
    },
    "ariaConfig": {"tableLabel": "Incident log"},
}

tk.configure_logging(verbose=True)
print(f"Incidents: {len(incidents)} rows x {len(incidents.columns)} columns")
print("Launching explorer...")

tk.explore(incidents, config=config)
