"""Review screen for Cardwise application."""

from PySide6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
                               QLabel, QFrame)
from PySide6.QtCore import Qt, Signal, QTimer
from PySide6.QtGui import QFont, QKeySequence, QShortcut, QPixmap

from ...engine.errors import ValidationError
from ...engine.models import AnswerKind
from ...utils.audio import attachment_player
from ...utils.config import config
from ...utils.files import (attachment_bytes, validate_file_type, AUDIO_TYPES,
                            IMAGE_TYPES, MARKDOWN_TYPES)

# label, colour per rating 0..5
RATING_BUTTONS = [
    ("Blackout", "#c0392b"),
    ("Wrong", "#ff4757"),
    ("Barely", "#ffa502"),
    ("Hard", "#7bed9f"),
    ("Good", "#2ed573"),
    ("Perfect", "#1e90ff"),
]


class ReviewScreen(QWidget):
    """Review screen with card display and 0-5 rating buttons."""

    # Signals
    card_rated = Signal(str, int)  # card_id, rating
    review_finished = Signal()
    back_to_home = Signal()

    def __init__(self):
        super().__init__()
        self.cards = []
        self.current_card = None
        self.is_answer_shown = False
        self.setup_ui()
        self.setup_shortcuts()

    def setup_ui(self):
        """Set up the review screen UI."""
        layout = QVBoxLayout()

        # Header with remaining count
        header_layout = QHBoxLayout()

        self.back_button = QPushButton("← Back")
        self.back_button.clicked.connect(self.back_to_home.emit)
        header_layout.addWidget(self.back_button)

        header_layout.addStretch()

        # Audio toggle button
        self.audio_toggle_btn = QPushButton("🔊" if config.is_audio_enabled() else "🔇")
        self.audio_toggle_btn.clicked.connect(self.toggle_audio)
        self.audio_toggle_btn.setFixedSize(40, 30)
        self.audio_toggle_btn.setToolTip("Toggle audio on/off")
        header_layout.addWidget(self.audio_toggle_btn)

        header_layout.addSpacing(10)

        self.remaining_label = QLabel("Remaining: 0")
        self.remaining_label.setStyleSheet("QLabel { color: #555; font-weight: bold; }")
        header_layout.addWidget(self.remaining_label)

        layout.addLayout(header_layout)

        layout.addSpacing(20)

        # Card display
        self.card_frame = QFrame()
        self.card_frame.setFrameStyle(QFrame.StyledPanel)
        self.card_frame.setMinimumHeight(200)
        card_layout = QVBoxLayout(self.card_frame)

        self.question_label = QLabel("Click 'Show Answer' to begin")
        self.question_label.setAlignment(Qt.AlignCenter)
        question_font = QFont()
        question_font.setPointSize(22)
        question_font.setBold(True)
        self.question_label.setFont(question_font)
        self.question_label.setWordWrap(True)
        self.question_label.setStyleSheet("QLabel { color: #1a252f; padding: 20px; }")
        card_layout.addWidget(self.question_label)

        # Answer content (hidden initially)
        self.answer_widget = QWidget()
        answer_layout = QVBoxLayout(self.answer_widget)
        answer_layout.setSpacing(15)

        self.answer_label = QLabel()
        self.answer_label.setAlignment(Qt.AlignCenter)
        answer_font = QFont()
        answer_font.setPointSize(16)
        self.answer_label.setFont(answer_font)
        self.answer_label.setWordWrap(True)
        self.answer_label.setStyleSheet("QLabel { color: #27ae60; }")
        answer_layout.addWidget(self.answer_label)

        self.image_label = QLabel()
        self.image_label.setAlignment(Qt.AlignCenter)
        self.image_label.hide()
        answer_layout.addWidget(self.image_label)

        self.play_button = QPushButton("▶ Play recording")
        self.play_button.clicked.connect(lambda: self.play_audio(force=True))
        self.play_button.hide()
        answer_layout.addWidget(self.play_button)

        self.tags_label = QLabel()
        self.tags_label.setAlignment(Qt.AlignCenter)
        self.tags_label.setStyleSheet("QLabel { color: #7f8c8d; }")
        answer_layout.addWidget(self.tags_label)

        self.answer_widget.hide()
        card_layout.addWidget(self.answer_widget)

        layout.addWidget(self.card_frame)

        layout.addSpacing(20)

        # Show answer / Rating buttons
        self.button_frame = QFrame()
        button_layout = QVBoxLayout(self.button_frame)

        self.show_answer_button = QPushButton("Show Answer (Space)")
        self.show_answer_button.clicked.connect(self.show_answer)
        self.show_answer_button.setMinimumHeight(40)
        button_layout.addWidget(self.show_answer_button)

        rating_layout = QHBoxLayout()
        self.rating_buttons = []
        for rating, (caption, colour) in enumerate(RATING_BUTTONS):
            button = QPushButton(f"{caption} ({rating})")
            button.clicked.connect(lambda checked=False, r=rating: self.rate_card(r))
            button.setStyleSheet(f"QPushButton {{ background-color: {colour}; color: white; min-height: 40px; }}")
            button.hide()
            rating_layout.addWidget(button)
            self.rating_buttons.append(button)

        button_layout.addLayout(rating_layout)
        layout.addWidget(self.button_frame)

        layout.addStretch()

        self.setLayout(layout)

    def setup_shortcuts(self):
        """Space shows the answer, digits 0-5 rate."""
        space_shortcut = QShortcut(QKeySequence(Qt.Key_Space), self)
        space_shortcut.activated.connect(self.handle_space_key)

        for rating in range(len(RATING_BUTTONS)):
            shortcut = QShortcut(QKeySequence(str(rating)), self)
            shortcut.activated.connect(lambda r=rating: self.rate_card(r))

    def handle_space_key(self):
        if not self.is_answer_shown:
            self.show_answer()

    def _set_rating_buttons_visible(self, visible):
        for button in self.rating_buttons:
            button.setVisible(visible)

    def start_review_session(self, cards):
        """Start a review session with the given cards."""
        self.cards = list(cards)
        self.question_label.setStyleSheet("QLabel { color: #1a252f; padding: 20px; }")

        if self.cards:
            self.show_card(self.cards[0])
        else:
            self.question_label.setText("No cards to review!")
            self.show_answer_button.hide()
        self.update_progress()

    def show_card(self, card):
        """Display a card's question."""
        self.current_card = card
        self.is_answer_shown = False

        self.question_label.setText(card.question)

        self.answer_widget.hide()
        self._set_rating_buttons_visible(False)
        self.show_answer_button.show()

    def show_answer(self):
        """Show the answer and rating buttons."""
        if not self.current_card:
            return

        self.is_answer_shown = True
        self._show_answer_content(self.current_card)

        self.show_answer_button.hide()
        self._set_rating_buttons_visible(True)

    def _show_answer_content(self, card):
        """Render the answer according to its kind."""
        answer = card.answer

        if answer.kind in (AnswerKind.MARKDOWN, AnswerKind.MIXED):
            self.answer_label.setTextFormat(Qt.MarkdownText)
        else:
            self.answer_label.setTextFormat(Qt.PlainText)
        text = answer.content
        markdown_files = [a for a in answer.attachments if validate_file_type(a.type, MARKDOWN_TYPES)]
        if not text.strip() and markdown_files:
            try:
                text = attachment_bytes(markdown_files[0]).decode("utf-8", "replace")
                self.answer_label.setTextFormat(Qt.MarkdownText)
            except ValidationError as e:
                print(f"Error showing markdown file: {e}")
        self.answer_label.setText(text)
        self.answer_label.setVisible(bool(text))

        images = [a for a in answer.attachments if validate_file_type(a.type, IMAGE_TYPES)]
        self.image_label.hide()
        if images:
            pixmap = QPixmap()
            try:
                loaded = pixmap.loadFromData(attachment_bytes(images[0]))
            except ValidationError as e:
                print(f"Error showing image: {e}")
                loaded = False
            if loaded:
                self.image_label.setPixmap(pixmap.scaledToWidth(min(pixmap.width(), 480)))
                self.image_label.show()

        has_audio = any(validate_file_type(a.type, AUDIO_TYPES) for a in answer.attachments)
        self.play_button.setVisible(has_audio)

        self.tags_label.setText(" • ".join(f"#{tag}" for tag in card.tags))

        self.answer_widget.show()

        if has_audio:
            self.play_audio()

    def play_audio(self, force=False):
        """Play the first audio attachment of the current card."""
        if not self.current_card:
            return
        for attachment in self.current_card.answer.attachments:
            if validate_file_type(attachment.type, AUDIO_TYPES):
                attachment_player().play(attachment, force=force)
                return

    def update_session_queue(self, new_cards):
        """Replace the queue with what is still due after a rating."""
        if not new_cards:
            self.end_session_early()
            return

        self.cards = list(new_cards)
        self.show_card(self.cards[0])
        self.update_progress()

    def end_session_early(self):
        """End the session when no more cards are available."""
        self.question_label.setText("🎉 Review session complete!")
        self.answer_widget.hide()
        self.show_answer_button.hide()
        self._set_rating_buttons_visible(False)
        self.current_card = None
        self.cards = []
        self.update_progress()

        QTimer.singleShot(2000, self.review_finished.emit)

    def rate_card(self, rating):
        """Rate the current card; the main window persists it and refills the queue."""
        if not self.current_card or not self.is_answer_shown:
            return

        attachment_player().stop()
        self.card_rated.emit(self.current_card.id, rating)

    def update_progress(self):
        self.remaining_label.setText(f"Remaining: {len(self.cards)}")

    def show_completion(self):
        """Show review completion screen."""
        self.answer_widget.hide()
        self._set_rating_buttons_visible(False)
        self.show_answer_button.hide()

        self.question_label.setText("🎉 All Reviews Complete!\n\nCome back tomorrow for more cards.")
        self.question_label.setStyleSheet("QLabel { color: #27ae60; padding: 40px; }")
        self.remaining_label.setText("🎉 Session Complete!")

    def toggle_audio(self):
        """Toggle audio on/off and update button appearance."""
        new_state = attachment_player().toggle_enabled()

        if new_state:
            self.audio_toggle_btn.setText("🔊")
            self.audio_toggle_btn.setToolTip("Audio on - Click to turn off")
        else:
            self.audio_toggle_btn.setText("🔇")
            self.audio_toggle_btn.setToolTip("Audio off - Click to turn on")
