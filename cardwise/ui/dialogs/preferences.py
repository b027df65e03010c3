"""Preferences dialog for Cardwise application."""

from PySide6.QtWidgets import (QDialog, QVBoxLayout, QHBoxLayout, QPushButton,
                               QLabel, QSpinBox, QCheckBox, QMessageBox,
                               QGroupBox)
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont

from ...engine.errors import StorageFailure
from ...utils.audio import attachment_player
from ...utils.config import config
from ...utils.files import format_file_size


class PreferencesDialog(QDialog):
    """Dialog for managing application preferences."""

    # Signal emitted when preferences are saved
    preferences_saved = Signal()

    def __init__(self, scheduler=None, parent=None):
        super().__init__(parent)
        self.scheduler = scheduler
        self.setWindowTitle("Preferences")
        self.setModal(True)
        self.resize(460, 360)
        self.setup_ui()
        self.load_current_settings()

    def setup_ui(self):
        """Set up the preferences dialog UI."""
        layout = QVBoxLayout()

        # Title
        title = QLabel("Preferences")
        title_font = QFont()
        title_font.setPointSize(18)
        title_font.setBold(True)
        title.setFont(title_font)
        title.setAlignment(Qt.AlignCenter)
        layout.addWidget(title)

        layout.addSpacing(20)

        # Study settings
        study_group = QGroupBox("Study")
        study_layout = QVBoxLayout(study_group)

        tag_layout = QHBoxLayout()
        tag_layout.addWidget(QLabel("Remembered tags:"))
        self.tag_cache_spin = QSpinBox()
        self.tag_cache_spin.setRange(1, 1000)
        tag_layout.addWidget(self.tag_cache_spin)
        tag_layout.addStretch()
        study_layout.addLayout(tag_layout)

        days_layout = QHBoxLayout()
        days_layout.addWidget(QLabel("Days shown in statistics:"))
        self.stats_days_spin = QSpinBox()
        self.stats_days_spin.setRange(1, 90)
        days_layout.addWidget(self.stats_days_spin)
        days_layout.addStretch()
        study_layout.addLayout(days_layout)

        rollover_layout = QHBoxLayout()
        rollover_layout.addWidget(QLabel("New day starts at hour:"))
        self.rollover_spin = QSpinBox()
        self.rollover_spin.setRange(0, 23)
        rollover_layout.addWidget(self.rollover_spin)
        rollover_layout.addStretch()
        study_layout.addLayout(rollover_layout)

        self.audio_checkbox = QCheckBox("Play audio answers automatically")
        study_layout.addWidget(self.audio_checkbox)

        layout.addWidget(study_group)

        # Storage info
        storage_group = QGroupBox("Storage")
        storage_layout = QVBoxLayout(storage_group)
        self.db_path_label = QLabel(config.get_db_path())
        self.db_path_label.setStyleSheet("color: #666; font-size: 11px;")
        self.db_path_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        storage_layout.addWidget(self.db_path_label)
        self.db_stats_label = QLabel()
        storage_layout.addWidget(self.db_stats_label)
        cache_layout = QHBoxLayout()
        self.cache_label = QLabel()
        cache_layout.addWidget(self.cache_label)
        cache_layout.addStretch()
        self.clear_cache_btn = QPushButton("Clear Audio Cache")
        self.clear_cache_btn.clicked.connect(self.clear_audio_cache)
        cache_layout.addWidget(self.clear_cache_btn)
        storage_layout.addLayout(cache_layout)
        layout.addWidget(storage_group)

        layout.addStretch()

        # Buttons
        button_layout = QHBoxLayout()

        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.clicked.connect(self.reject)
        button_layout.addWidget(self.cancel_btn)

        button_layout.addStretch()

        self.save_btn = QPushButton("Save")
        self.save_btn.clicked.connect(self.save_preferences)
        self.save_btn.setStyleSheet("QPushButton { background-color: #0078d7; color: white; padding: 8px 16px; }")
        self.save_btn.setDefault(True)
        button_layout.addWidget(self.save_btn)

        layout.addLayout(button_layout)

        self.setLayout(layout)

    def load_current_settings(self):
        """Load current settings from config."""
        self.tag_cache_spin.setValue(config.get_tag_cache_size())
        self.stats_days_spin.setValue(config.get_stats_days())
        self.rollover_spin.setValue(config.get_rollover_hour())
        self.audio_checkbox.setChecked(config.is_audio_enabled())

        if self.scheduler:
            try:
                counts = self.scheduler.db.stats()
                self.db_stats_label.setText(
                    f"{counts['cards']} cards, {counts['schedules']} schedules, {counts['tags']} tags"
                )
            except StorageFailure as e:
                self.db_stats_label.setText(f"Could not read database: {e}")

        self.update_cache_label()

    def update_cache_label(self):
        files, size = attachment_player().cache_usage()
        self.cache_label.setText(f"Audio cache: {files} files, {format_file_size(size)}")

    def clear_audio_cache(self):
        removed = attachment_player().clear_cache()
        print(f"Removed {removed} cached audio files")
        self.update_cache_label()

    def save_preferences(self):
        """Save preferences to config."""
        config.set_tag_cache_size(self.tag_cache_spin.value())
        config.set_stats_days(self.stats_days_spin.value())
        config.set_rollover_hour(self.rollover_spin.value())
        config.set_audio_enabled(self.audio_checkbox.isChecked())

        # Emit signal and close
        self.preferences_saved.emit()
        QMessageBox.information(self, "Preferences Saved",
                                "Your preferences have been saved successfully!")
        self.accept()
