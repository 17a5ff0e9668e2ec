import pandas as pd
from datetime import date
from pathlib import Path
from faceattend.config.paths import EXPORTS_DIR
from faceattend.utils.logging import setup_logger

CSV_COLUMNS = ['No', 'Name', 'Date', 'Time', 'Status']


class ReportService:
    """
    Handles attendance exports.
    Exports only names and times, no biometrics.
    """

    def __init__(self, exports_dir=None):
        self.logger = setup_logger()
        self.exports_dir = Path(exports_dir) if exports_dir is not None else EXPORTS_DIR
        self.exports_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def to_frame(records):
        """
        One row per record in the given order, numbered from 1.
        Date and time use the current locale's formats.
        """
        rows = [
            {
                'No': index,
                'Name': record.name,
                'Date': record.timestamp.strftime('%x'),
                'Time': record.timestamp.strftime('%X'),
                'Status': record.status.value,
            }
            for index, record in enumerate(records, start=1)
        ]
        return pd.DataFrame(rows, columns=CSV_COLUMNS)

    def to_csv_text(self, records):
        return self.to_frame(records).to_csv(index=False, lineterminator='\n')

    def export_csv(self, records, day=None, filename=None):
        """
        Export attendance records to CSV.

        Args:
            records: Attendance records, most recent first
            day: Date used in the default filename (default: today)
            filename: Optional custom filename (default: attendance_YYYY-MM-DD.csv)

        Returns:
            Path to exported CSV file, or None if there is nothing to export
        """
        records = list(records)
        if not records:
            self.logger.warning("No attendance data to export")
            return None

        if filename is None:
            day = day or date.today()
            filename = f"attendance_{day.isoformat()}.csv"

        # Ensure .csv extension
        if not filename.endswith('.csv'):
            filename += '.csv'

        filepath = self.exports_dir / filename

        try:
            filepath.write_text(self.to_csv_text(records), encoding='utf-8')
            self.logger.info(f"Attendance exported to: {filepath}")
            return filepath
        except OSError as e:
            self.logger.error(f"Error exporting CSV: {e}")
            raise
