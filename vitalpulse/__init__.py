__all__ = ["CSV_HEADER", "__version__"]

__version__ = "0.1.0"

# Export header in exact order required by the CSV file
CSV_HEADER = [
    "Date",
    "Steps",
    "Heart Rate (BPM)",
    "Active Energy (cal)",
    "Exercise Time (min)",
    "Stand Minutes",
    "HRV (ms)",
    "Walking Distance (km)",
    "Swimming Distance (km)",
]
