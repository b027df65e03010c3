"""Card browser: search, filter by tag, edit and delete."""

from PySide6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
                               QLabel, QLineEdit, QComboBox, QTableWidget,
                               QTableWidgetItem, QHeaderView, QAbstractItemView,
                               QMessageBox)
from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont

from ...engine.errors import CardwiseError

ALL_TAGS = "All tags"


class CardsScreen(QWidget):
    """Table of cards with their next due date."""

    # Signals
    cards_changed = Signal(int)  # Number of cards removed
    edit_requested = Signal(str)  # card_id

    def __init__(self, scheduler=None):
        super().__init__()
        self.scheduler = scheduler
        self.setup_ui()

    def setup_ui(self):
        layout = QVBoxLayout()

        title = QLabel("Cards")
        title_font = QFont()
        title_font.setPointSize(18)
        title_font.setBold(True)
        title.setFont(title_font)
        title.setAlignment(Qt.AlignCenter)
        layout.addWidget(title)

        # Search and tag filter
        filter_layout = QHBoxLayout()
        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Search questions, answers and tags...")
        self.search_input.textChanged.connect(self.refresh)
        filter_layout.addWidget(self.search_input)

        self.tag_combo = QComboBox()
        self.tag_combo.setMinimumWidth(140)
        self.tag_combo.currentIndexChanged.connect(self.refresh)
        filter_layout.addWidget(self.tag_combo)
        layout.addLayout(filter_layout)

        self.table = QTableWidget(0, 4)
        self.table.setHorizontalHeaderLabels(["Question", "Tags", "Next due", "Interval"])
        self.table.horizontalHeader().setSectionResizeMode(0, QHeaderView.Stretch)
        self.table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.table.doubleClicked.connect(self.edit_selected)
        layout.addWidget(self.table)

        button_layout = QHBoxLayout()
        self.count_label = QLabel("0 cards")
        self.count_label.setStyleSheet("color: grey;")
        button_layout.addWidget(self.count_label)
        button_layout.addStretch()

        self.edit_btn = QPushButton("Edit")
        self.edit_btn.clicked.connect(self.edit_selected)
        button_layout.addWidget(self.edit_btn)

        self.delete_btn = QPushButton("Delete")
        self.delete_btn.clicked.connect(self.delete_selected)
        self.delete_btn.setStyleSheet("QPushButton { color: #c0392b; }")
        button_layout.addWidget(self.delete_btn)
        layout.addLayout(button_layout)

        self.setLayout(layout)
        self.refresh()

    def _reload_tags(self):
        current = self.tag_combo.currentText()
        self.tag_combo.blockSignals(True)
        self.tag_combo.clear()
        self.tag_combo.addItem(ALL_TAGS)
        self.tag_combo.addItems(self.scheduler.all_tags())
        index = self.tag_combo.findText(current)
        self.tag_combo.setCurrentIndex(max(index, 0))
        self.tag_combo.blockSignals(False)

    def _visible_entries(self):
        query = self.search_input.text().strip()
        tag = self.tag_combo.currentText()

        entries = self.scheduler.repo.all_cards_with_schedule()
        if query:
            matching = {card.id for card in self.scheduler.search_cards(query)}
            entries = [e for e in entries if e["card"].id in matching]
        if tag and tag != ALL_TAGS:
            wanted = tag.lower()
            entries = [e for e in entries if any(t.lower() == wanted for t in e["card"].tags)]
        return entries

    def refresh(self):
        """Reload the table from the database."""
        if not self.scheduler:
            return

        try:
            self._reload_tags()
            entries = self._visible_entries()
        except CardwiseError as e:
            print(f"Error loading cards: {e}")
            QMessageBox.warning(self, "Database Error", f"Failed to load cards: {e}")
            return

        self.table.setRowCount(len(entries))
        for row, entry in enumerate(entries):
            card, schedule = entry["card"], entry["schedule"]

            question_item = QTableWidgetItem(card.question)
            question_item.setData(Qt.UserRole, card.id)
            self.table.setItem(row, 0, question_item)
            self.table.setItem(row, 1, QTableWidgetItem(", ".join(card.tags)))

            if schedule:
                due = schedule.due_date.strftime("%Y-%m-%d %H:%M")
                interval = f"{schedule.interval}d"
            else:
                due, interval = "-", "-"
            self.table.setItem(row, 2, QTableWidgetItem(due))
            self.table.setItem(row, 3, QTableWidgetItem(interval))

        self.count_label.setText(f"{len(entries)} cards")
        self.update_ui_state()

    def update_ui_state(self):
        has_rows = self.table.rowCount() > 0
        self.edit_btn.setEnabled(has_rows)
        self.delete_btn.setEnabled(has_rows)

    def selected_card_id(self):
        row = self.table.currentRow()
        if row < 0:
            return None
        item = self.table.item(row, 0)
        return item.data(Qt.UserRole) if item else None

    def edit_selected(self):
        card_id = self.selected_card_id()
        if card_id:
            self.edit_requested.emit(card_id)

    def delete_selected(self):
        card_id = self.selected_card_id()
        if not card_id:
            return

        question = self.table.item(self.table.currentRow(), 0).text()
        reply = QMessageBox.question(
            self, "Delete Card",
            f"Delete '{question}' and its review history?",
            QMessageBox.Yes | QMessageBox.No, QMessageBox.No,
        )
        if reply != QMessageBox.Yes:
            return

        try:
            self.scheduler.delete_card(card_id)
        except CardwiseError as e:
            QMessageBox.critical(self, "Delete Failed", f"Failed to delete card: {e}")
            self.refresh()
            return

        print(f"Deleted card {card_id}")
        self.cards_changed.emit(1)
