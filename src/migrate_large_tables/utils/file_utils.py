from datetime import datetime
from pathlib import Path
from typing import Dict

import pandas as pd


def ensure_output_dir(file_path: str, create_dirs: bool = True) -> Path:
    """
    Ensure the output directory exists for a given file path.

    Args:
        file_path: Path to the file
        create_dirs: Whether to create directories if they don't exist

    Returns:
        Path object pointing to the file
    """
    path = Path(file_path)

    if create_dirs:
        path.parent.mkdir(parents=True, exist_ok=True)

    return path


def save_csv(df: pd.DataFrame, output_file: str) -> str:
    """
    Save a pandas DataFrame to a CSV file.

    Args:
        df: DataFrame to save
        output_file: Output file path

    Returns:
        Path to the saved file
    """
    output_path = ensure_output_dir(output_file, create_dirs=True)
    df.to_csv(output_path, index=False)
    return str(output_path)


def save_results_report(results: Dict[str, str], results_dir: str, mode: str) -> str:
    """
    Write per-table outcomes of a run to ``<results_dir>/migration_<mode>_<timestamp>.csv``.

    Returns:
        Path to the saved report
    """
    df = pd.DataFrame(
        [{'table_id': table_id, 'result': result} for table_id, result in results.items()],
        columns=['table_id', 'result'],
    )
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return save_csv(df, str(Path(results_dir) / f"migration_{mode}_{timestamp}.csv"))
