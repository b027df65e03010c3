"""Home screen for Cardwise application."""

from PySide6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
                               QLabel, QFrame, QGridLayout)
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont


class HomeScreen(QWidget):
    """Dashboard with today's numbers and the start review button."""

    # Signals
    start_review_requested = Signal()
    show_stats_requested = Signal()

    def __init__(self, scheduler=None):
        super().__init__()
        self.scheduler = scheduler
        self.value_labels = {}
        self.setup_ui()

    def setup_ui(self):
        """Set up the home screen UI."""
        layout = QVBoxLayout()

        # Title
        title = QLabel("Cardwise")
        title_font = QFont()
        title_font.setPointSize(24)
        title_font.setBold(True)
        title.setFont(title_font)
        title.setAlignment(Qt.AlignCenter)
        layout.addWidget(title)

        layout.addSpacing(20)

        # Overview section
        overview_frame = QFrame()
        overview_frame.setFrameStyle(QFrame.StyledPanel)
        grid = QGridLayout(overview_frame)

        tiles = [
            ("dueCards", "Due now"),
            ("dailyReviewCount", "Reviewed today"),
            ("totalCards", "Total cards"),
            ("retentionRate", "Retention"),
        ]
        for column, (key, caption) in enumerate(tiles):
            value = QLabel("0")
            value.setAlignment(Qt.AlignCenter)
            value.setStyleSheet("font-size: 22px; font-weight: bold; color: #1a252f;")
            grid.addWidget(value, 0, column)

            label = QLabel(caption)
            label.setAlignment(Qt.AlignCenter)
            label.setStyleSheet("color: grey;")
            grid.addWidget(label, 1, column)
            self.value_labels[key] = value

        layout.addWidget(overview_frame)

        layout.addSpacing(20)

        # This week section
        week_frame = QFrame()
        week_frame.setFrameStyle(QFrame.StyledPanel)
        week_layout = QVBoxLayout(week_frame)

        week_title = QLabel("This Week")
        week_title.setStyleSheet("font-weight: bold; font-size: 14px;")
        week_layout.addWidget(week_title)

        self.week_label = QLabel("New: 0 | Reviews: 0 | Avg rating: 0")
        week_layout.addWidget(self.week_label)

        # Start review button
        self.review_button = QPushButton("Start Review")
        self.review_button.clicked.connect(self.start_review_requested.emit)
        self.review_button.setMinimumHeight(40)
        week_layout.addWidget(self.review_button)

        layout.addWidget(week_frame)

        layout.addStretch()

        # Stats info button
        info_layout = QHBoxLayout()
        info_layout.addStretch()
        self.stats_button = QPushButton("ⓘ Stats")
        self.stats_button.clicked.connect(self.show_stats_requested.emit)
        info_layout.addWidget(self.stats_button)
        layout.addLayout(info_layout)

        self.setLayout(layout)

        self.refresh()

    def refresh(self):
        """Reload dashboard numbers. Failed queries already come back as zeros."""
        if not self.scheduler:
            return

        summary = self.scheduler.get_stats_summary()
        self.update_stats(summary)

    def update_stats(self, summary):
        """Update the stats display."""
        for key, label in self.value_labels.items():
            value = summary.get(key, 0)
            label.setText(f"{value}%" if key == "retentionRate" else str(value))

        week = summary.get("weeklyProgress", {})
        self.week_label.setText(
            f"New: {week.get('newCards', 0)} | "
            f"Reviews: {week.get('reviewsCompleted', 0)} | "
            f"Avg rating: {week.get('averageRating', 0)}"
        )

        due = summary.get("dueCards", 0)
        self.review_button.setEnabled(due > 0)
        self.review_button.setText(f"Start Review ({due} due)" if due else "Nothing due right now")
