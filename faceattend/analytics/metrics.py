import pandas as pd
from datetime import datetime
from faceattend.utils.logging import setup_logger

COLUMNS = ['id', 'identity_id', 'name', 'timestamp', 'status']


class AttendanceMetrics:
    """
    Computes attendance counters and summaries from ledger records.
    """

    def __init__(self, records):
        self.records = list(records)
        self.logger = setup_logger()

    def to_frame(self):
        """
        Records as a DataFrame, in ledger order (most recent first).
        """
        if not self.records:
            return pd.DataFrame(columns=COLUMNS)

        df = pd.DataFrame([
            {
                'id': record.id,
                'identity_id': record.identity_id,
                'name': record.name,
                'timestamp': record.timestamp,
                'status': record.status.value,
            }
            for record in self.records
        ])
        df['timestamp'] = pd.to_datetime(df['timestamp'])
        return df

    def total_count(self):
        return len(self.records)

    def today_count(self, today=None):
        """
        Number of records on the given local calendar date (default: today).
        """
        today = today or datetime.now().date()
        return sum(1 for record in self.records if record.timestamp.date() == today)

    def daily_summary(self):
        """
        Get daily attendance summary.

        Returns:
            DataFrame with date and count columns, oldest day first
        """
        df = self.to_frame()

        if df.empty:
            return pd.DataFrame(columns=['date', 'count'])

        df['date'] = df['timestamp'].dt.date
        daily = df.groupby('date').size().reset_index(name='count')
        daily = daily.sort_values('date').reset_index(drop=True)

        return daily

    def person_summary(self):
        """
        Get attendance count per person.

        Returns:
            DataFrame with identity_id, name and attendance_count, highest first
        """
        df = self.to_frame()

        if df.empty:
            return pd.DataFrame(columns=['identity_id', 'name', 'attendance_count'])

        summary = df.groupby(['identity_id', 'name']).size().reset_index(name='attendance_count')
        summary = summary.sort_values(
            ['attendance_count', 'name'], ascending=[False, True]
        ).reset_index(drop=True)

        return summary
