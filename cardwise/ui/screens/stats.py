"""Statistics screen: per-day activity, this week and retention."""

from PySide6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QLabel,
                               QTableWidget, QTableWidgetItem, QHeaderView,
                               QAbstractItemView, QFrame)
from PySide6.QtCore import Qt
from PySide6.QtGui import QFont

from ...engine.errors import StorageFailure
from ...utils.config import config


class StatsScreen(QWidget):
    def __init__(self, scheduler=None):
        super().__init__()
        self.scheduler = scheduler
        self.setup_ui()

    def setup_ui(self):
        layout = QVBoxLayout()

        title = QLabel("Statistics")
        title_font = QFont()
        title_font.setPointSize(18)
        title_font.setBold(True)
        title.setFont(title_font)
        title.setAlignment(Qt.AlignCenter)
        layout.addWidget(title)

        summary_frame = QFrame()
        summary_frame.setFrameStyle(QFrame.StyledPanel)
        summary_layout = QHBoxLayout(summary_frame)
        self.retention_label = QLabel("Retention: 0%")
        self.week_label = QLabel("This week: 0 new, 0 reviews")
        summary_layout.addWidget(self.retention_label)
        summary_layout.addStretch()
        summary_layout.addWidget(self.week_label)
        layout.addWidget(summary_frame)

        self.days_label = QLabel()
        self.days_label.setStyleSheet("font-weight: bold; font-size: 14px;")
        layout.addWidget(self.days_label)

        self.table = QTableWidget(0, 4)
        self.table.setHorizontalHeaderLabels(["Date", "New cards", "Reviews", "Avg rating"])
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.verticalHeader().setVisible(False)
        layout.addWidget(self.table)

        self.setLayout(layout)
        self.refresh()

    def refresh(self):
        if not self.scheduler:
            return

        days = config.get_stats_days()
        self.days_label.setText(f"Last {days} days")

        try:
            daily = self.scheduler.daily_stats(days)
        except StorageFailure as e:
            print(f"Warning: could not load daily stats: {e}")
            daily = []

        summary = self.scheduler.get_stats_summary()
        week = summary["weeklyProgress"]
        self.retention_label.setText(f"Retention: {summary['retentionRate']}%")
        self.week_label.setText(
            f"This week: {week['newCards']} new, {week['reviewsCompleted']} reviews, "
            f"avg rating {week['averageRating']}"
        )

        # Newest day on top
        rows = list(reversed(daily))
        self.table.setRowCount(len(rows))
        for row, entry in enumerate(rows):
            values = [entry["date"], entry["newCards"], entry["reviewsCompleted"], entry["averageRating"]]
            for column, value in enumerate(values):
                item = QTableWidgetItem(str(value))
                item.setTextAlignment(Qt.AlignCenter)
                self.table.setItem(row, column, item)
