"""Add / edit card screen for Cardwise application."""

from typing import List, Optional
from PySide6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
                               QLabel, QTextEdit, QComboBox, QLineEdit,
                               QMessageBox, QFrame, QListWidget, QFileDialog,
                               QCompleter)
from PySide6.QtCore import Qt, Signal, QStringListModel
from PySide6.QtGui import QFont

from ...engine.errors import CardwiseError
from ...engine.models import AnswerKind, Attachment, Card
from ...utils.files import file_to_attachment, format_file_size

FILE_FILTERS = {
    AnswerKind.IMAGE: "Images (*.png *.jpg *.jpeg *.gif *.webp)",
    AnswerKind.AUDIO: "Audio (*.mp3 *.wav *.ogg *.m4a *.webm)",
    AnswerKind.MARKDOWN: "Markdown (*.md *.markdown *.txt)",
}


def split_tags(text: str) -> List[str]:
    return [t.strip() for t in text.split(",") if t.strip()]


class AddCardsScreen(QWidget):
    """Form for a single card; doubles as the editor for existing cards."""

    # Signals
    cards_added = Signal(int)  # Number of cards added
    card_updated = Signal(str)  # card_id

    def __init__(self, scheduler=None):
        super().__init__()
        self.scheduler = scheduler
        self.editing_card: Optional[Card] = None
        self.attachments: List[Attachment] = []
        self.setup_ui()

    def setup_ui(self):
        """Set up the card form."""
        layout = QVBoxLayout()

        # Title
        self.title = QLabel("Add Card")
        title_font = QFont()
        title_font.setPointSize(18)
        title_font.setBold(True)
        self.title.setFont(title_font)
        self.title.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.title)

        layout.addSpacing(10)

        # Question section
        question_section = QFrame()
        question_section.setFrameStyle(QFrame.StyledPanel)
        question_layout = QVBoxLayout(question_section)

        question_title = QLabel("Question")
        question_title.setStyleSheet("font-weight: bold; font-size: 14px;")
        question_layout.addWidget(question_title)

        self.question_input = QTextEdit()
        self.question_input.setPlaceholderText("What is the capital of France?")
        self.question_input.setFixedHeight(70)
        question_layout.addWidget(self.question_input)

        layout.addWidget(question_section)

        # Answer section
        answer_section = QFrame()
        answer_section.setFrameStyle(QFrame.StyledPanel)
        answer_layout = QVBoxLayout(answer_section)

        answer_header = QHBoxLayout()
        answer_title = QLabel("Answer")
        answer_title.setStyleSheet("font-weight: bold; font-size: 14px;")
        answer_header.addWidget(answer_title)
        answer_header.addStretch()
        answer_header.addWidget(QLabel("Type:"))
        self.kind_combo = QComboBox()
        for kind in AnswerKind:
            self.kind_combo.addItem(kind.value.capitalize(), kind)
        self.kind_combo.currentIndexChanged.connect(self.update_ui_state)
        answer_header.addWidget(self.kind_combo)
        answer_layout.addLayout(answer_header)

        self.answer_input = QTextEdit()
        self.answer_input.setPlaceholderText("Paris")
        self.answer_input.setFixedHeight(100)
        answer_layout.addWidget(self.answer_input)

        # Attachments
        attach_layout = QHBoxLayout()
        self.attachment_list = QListWidget()
        self.attachment_list.setFixedHeight(60)
        attach_layout.addWidget(self.attachment_list)

        attach_buttons = QVBoxLayout()
        self.attach_btn = QPushButton("Attach File…")
        self.attach_btn.clicked.connect(self.attach_file)
        attach_buttons.addWidget(self.attach_btn)
        self.remove_attachment_btn = QPushButton("Remove")
        self.remove_attachment_btn.clicked.connect(self.remove_attachment)
        attach_buttons.addWidget(self.remove_attachment_btn)
        attach_layout.addLayout(attach_buttons)
        answer_layout.addLayout(attach_layout)

        layout.addWidget(answer_section)

        # Tags section
        tags_section = QFrame()
        tags_section.setFrameStyle(QFrame.StyledPanel)
        tags_layout = QHBoxLayout(tags_section)
        tags_layout.addWidget(QLabel("Tags:"))

        self.tags_input = QLineEdit()
        self.tags_input.setPlaceholderText("geography, europe")
        self.tag_model = QStringListModel()
        self.tag_completer = QCompleter(self.tag_model, self)
        self.tag_completer.setCaseSensitivity(Qt.CaseInsensitive)
        self.tag_completer.setCompletionMode(QCompleter.UnfilteredPopupCompletion)
        self.tag_completer.setWidget(self.tags_input)
        self.tag_completer.activated.connect(self.insert_tag_completion)
        self.tags_input.textEdited.connect(self.update_tag_suggestions)
        tags_layout.addWidget(self.tags_input)

        layout.addWidget(tags_section)

        layout.addSpacing(10)

        # Buttons
        button_layout = QHBoxLayout()

        self.clear_btn = QPushButton("Clear")
        self.clear_btn.clicked.connect(self.clear_inputs)
        button_layout.addWidget(self.clear_btn)

        button_layout.addStretch()

        self.save_btn = QPushButton("Add Card")
        self.save_btn.clicked.connect(self.save_card)
        self.save_btn.setMinimumHeight(40)
        self.save_btn.setStyleSheet("QPushButton { background-color: #0078d7; color: white; font-weight: bold; }")
        button_layout.addWidget(self.save_btn)

        layout.addLayout(button_layout)

        layout.addStretch()
        self.setLayout(layout)

        self.question_input.textChanged.connect(self.update_ui_state)
        self.answer_input.textChanged.connect(self.update_ui_state)
        self.update_ui_state()

    # Tag autocomplete

    def update_tag_suggestions(self, text: str):
        """Suggest tags for the fragment after the last comma."""
        if not self.scheduler:
            return

        fragment = text.rsplit(",", 1)[-1].strip()
        try:
            suggestions = self.scheduler.tag_suggestions(fragment)
        except CardwiseError as e:
            print(f"[tags] suggestion lookup failed: {e}")
            return

        already = {t.lower() for t in split_tags(text)[:-1]}
        self.tag_model.setStringList([u.tag for u in suggestions if u.tag not in already])
        if fragment and self.tag_model.rowCount():
            self.tag_completer.complete()
        else:
            self.tag_completer.popup().hide()

    def insert_tag_completion(self, tag: str):
        head = self.tags_input.text().rsplit(",", 1)
        prefix = head[0] + ", " if len(head) > 1 else ""
        self.tags_input.setText(f"{prefix}{tag}, ")

    # Attachments

    def attach_file(self):
        kind = self.kind_combo.currentData()
        file_filter = FILE_FILTERS.get(kind, "All files (*)")
        paths, _ = QFileDialog.getOpenFileNames(self, "Attach Files", "", f"{file_filter};;All files (*)")

        for path in paths:
            try:
                attachment = file_to_attachment(path)
            except OSError as e:
                QMessageBox.warning(self, "Attachment Error", f"Could not read {path}: {e}")
                continue
            self.attachments.append(attachment)

        self.refresh_attachment_list()

    def remove_attachment(self):
        row = self.attachment_list.currentRow()
        if 0 <= row < len(self.attachments):
            del self.attachments[row]
            self.refresh_attachment_list()

    def refresh_attachment_list(self):
        self.attachment_list.clear()
        for attachment in self.attachments:
            self.attachment_list.addItem(f"{attachment.name} ({format_file_size(attachment.size)})")
        self.update_ui_state()

    # Form state

    def load_card(self, card: Card):
        """Fill the form with an existing card and switch to edit mode."""
        self.editing_card = card
        self.question_input.setPlainText(card.question)
        self.answer_input.setPlainText(card.answer.content)
        self.kind_combo.setCurrentIndex(self.kind_combo.findData(card.answer.kind))
        self.attachments = list(card.answer.attachments)
        self.tags_input.setText(", ".join(card.tags))
        self.refresh_attachment_list()

        self.title.setText("Edit Card")
        self.save_btn.setText("Save Changes")
        self.clear_btn.setText("Cancel")

    def clear_inputs(self):
        """Reset the form to add mode."""
        self.editing_card = None
        self.question_input.clear()
        self.answer_input.clear()
        self.kind_combo.setCurrentIndex(0)
        self.tags_input.clear()
        self.attachments = []
        self.refresh_attachment_list()

        self.title.setText("Add Card")
        self.save_btn.setText("Add Card")
        self.clear_btn.setText("Clear")

    def update_ui_state(self):
        has_question = bool(self.question_input.toPlainText().strip())
        has_answer = bool(self.answer_input.toPlainText().strip() or self.attachments)
        self.save_btn.setEnabled(has_question and has_answer)
        self.remove_attachment_btn.setEnabled(bool(self.attachments))

    def refresh(self):
        # Suggestions are fetched on each keystroke; nothing is cached here
        self.update_ui_state()

    def save_card(self):
        """Create a new card or save edits to the loaded one."""
        if not self.scheduler:
            return

        question = self.question_input.toPlainText().strip()
        answer = {
            "type": self.kind_combo.currentData().value,
            "content": self.answer_input.toPlainText().strip(),
            "attachments": [a.to_dict() for a in self.attachments],
        }
        tags = split_tags(self.tags_input.text())

        try:
            if self.editing_card:
                card = self.scheduler.update_card(self.editing_card.id, question, answer, tags)
                print(f"Updated card {card.id}")
                self.clear_inputs()
                self.card_updated.emit(card.id)
            else:
                card = self.scheduler.create_card(question, answer, tags)
                print(f"Added card {card.id}")
                self.clear_inputs()
                self.cards_added.emit(1)
        except CardwiseError as e:
            QMessageBox.critical(self, "Save Failed", f"Failed to save card: {e}")
