"""Main UI application for Cardwise flashcard app."""

import sys
from datetime import date
from PySide6.QtWidgets import (QApplication, QMainWindow, QTabWidget, QMessageBox,
                               QFileDialog)
from PySide6.QtGui import QAction

from .screens.home import HomeScreen
from .screens.review import ReviewScreen
from .screens.add_cards import AddCardsScreen
from .screens.cards import CardsScreen
from .screens.stats import StatsScreen
from .dialogs.preferences import PreferencesDialog
from ..engine.errors import CardwiseError
from ..engine.scheduler import Scheduler
from ..utils.audio import attachment_player
from ..utils.config import config
from ..utils.study_time import StudyTime


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Cardwise")
        self.resize(760, 560)

        # Initialize database and scheduler
        self.scheduler = Scheduler(config.get_db_path(), config.get_tag_cache_size(),
                                   days=StudyTime(config.get_rollover_hour()))
        self._seed_tag_cache()

        # Create tab widget for main navigation
        self.tab_widget = QTabWidget()
        self.setCentralWidget(self.tab_widget)

        # Create screens
        self.home_screen = HomeScreen(self.scheduler)
        self.cards_screen = CardsScreen(self.scheduler)
        self.add_cards_screen = AddCardsScreen(self.scheduler)
        self.stats_screen = StatsScreen(self.scheduler)
        self.review_screen = ReviewScreen()  # Swapped in for review sessions, not a tab

        self.tab_widget.addTab(self.home_screen, "🏠 Home")
        self.tab_widget.addTab(self.cards_screen, "🗂 Cards")
        self.tab_widget.addTab(self.add_cards_screen, "➕ Add Card")
        self.tab_widget.addTab(self.stats_screen, "📈 Stats")

        # Connect signals
        self.home_screen.start_review_requested.connect(self.start_review)
        self.home_screen.show_stats_requested.connect(lambda: self.tab_widget.setCurrentWidget(self.stats_screen))
        self.add_cards_screen.cards_added.connect(self.on_cards_changed)
        self.cards_screen.cards_changed.connect(self.on_cards_changed)
        self.cards_screen.edit_requested.connect(self.edit_card)
        self.add_cards_screen.card_updated.connect(self.on_card_updated)
        self.review_screen.back_to_home.connect(self.show_home)
        self.review_screen.review_finished.connect(self.review_complete)
        self.review_screen.card_rated.connect(self.on_card_rated)
        self.tab_widget.currentChanged.connect(self.on_tab_changed)

        self._build_menu()
        self._restore_geometry()

        # Start on home tab
        self.tab_widget.setCurrentIndex(0)

    def _seed_tag_cache(self):
        """Merge tags of existing cards into the suggestion cache."""
        try:
            self.scheduler.initialize_tag_cache()
        except CardwiseError as e:
            print(f"[tags] could not initialize tag cache: {e}")

    def _build_menu(self):
        file_menu = self.menuBar().addMenu("&File")

        import_action = QAction("Import Cards…", self)
        import_action.triggered.connect(self.import_cards)
        file_menu.addAction(import_action)

        export_action = QAction("Export Cards…", self)
        export_action.triggered.connect(self.export_cards)
        file_menu.addAction(export_action)

        file_menu.addSeparator()

        prefs_action = QAction("Preferences…", self)
        prefs_action.triggered.connect(self.show_preferences)
        file_menu.addAction(prefs_action)

        quit_action = QAction("Quit", self)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

    def _restore_geometry(self):
        geometry = config.get("window_geometry")
        if geometry and len(geometry) == 4:
            self.setGeometry(*geometry)

    def closeEvent(self, event):
        rect = self.geometry()
        config.set("window_geometry", [rect.x(), rect.y(), rect.width(), rect.height()])
        self.scheduler.close()
        super().closeEvent(event)

    def show_home(self):
        """Show the home tab and restore main navigation."""
        try:
            if self.centralWidget() != self.tab_widget:
                # setCentralWidget deletes the old widget, so detach the review screen first
                self.takeCentralWidget()
                self.setCentralWidget(self.tab_widget)

            self.tab_widget.setCurrentIndex(0)
            self.home_screen.refresh()
        except RuntimeError as e:
            print(f"Error restoring home screen: {e}")

    def on_tab_changed(self, index):
        widget = self.tab_widget.widget(index)
        if hasattr(widget, "refresh"):
            widget.refresh()

    def start_review(self):
        """Start a review session with every due card."""
        try:
            cards = self.scheduler.build_session()
        except CardwiseError as e:
            print(f"Error building review session: {e}")
            QMessageBox.critical(self, "Error", f"Failed to start review session: {e}")
            return

        if not cards:
            QMessageBox.information(self, "No Cards Due", "No cards are due for review right now!")
            return

        # Detach the tabs without deleting them
        self.takeCentralWidget()
        self.setCentralWidget(self.review_screen)
        self.review_screen.start_review_session(cards)

    def review_complete(self):
        """Handle review session completion."""
        self.review_screen.show_completion()

    def on_card_rated(self, card_id, rating):
        """Persist a rating, then rebuild the queue from what is still due."""
        try:
            schedule = self.scheduler.record_review(card_id, rating)
            print(f"Card {card_id} rated {rating}, next due {schedule.due_date:%Y-%m-%d}")
        except CardwiseError as e:
            print(f"Error processing card rating: {e}")
            QMessageBox.warning(self, "Review Not Saved", str(e))
            return

        try:
            remaining = self.scheduler.build_session()
        except CardwiseError as e:
            print(f"Error rebuilding review queue: {e}")
            remaining = []

        if remaining:
            self.review_screen.update_session_queue(remaining)
        else:
            self.review_screen.end_session_early()

    def on_cards_changed(self, count=0):
        """Refresh screens that show cards or tags."""
        if count:
            print(f"Changed {count} cards")
        self.home_screen.refresh()
        self.cards_screen.refresh()

    def edit_card(self, card_id):
        try:
            card = self.scheduler.get_card(card_id)
        except CardwiseError as e:
            QMessageBox.warning(self, "Card Not Found", str(e))
            self.cards_screen.refresh()
            return
        self.add_cards_screen.load_card(card)
        self.tab_widget.setCurrentWidget(self.add_cards_screen)

    def on_card_updated(self, card_id):
        self.on_cards_changed()
        self.tab_widget.setCurrentWidget(self.cards_screen)

    def import_cards(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import Cards", "", "JSON files (*.json)")
        if not path:
            return

        try:
            with open(path, "r", encoding="utf-8") as f:
                imported = self.scheduler.import_cards(f.read())
        except (OSError, CardwiseError) as e:
            QMessageBox.critical(self, "Import Failed", f"Failed to import cards: {e}")
            return

        QMessageBox.information(self, "Import Complete", f"Imported {len(imported)} cards.")
        self.on_cards_changed(len(imported))

    def export_cards(self):
        default_name = f"cards-export-{date.today().isoformat()}.json"
        path, _ = QFileDialog.getSaveFileName(self, "Export Cards", default_name, "JSON files (*.json)")
        if not path:
            return

        try:
            data = self.scheduler.export_cards()
            with open(path, "w", encoding="utf-8") as f:
                f.write(data)
        except (OSError, CardwiseError) as e:
            QMessageBox.critical(self, "Export Failed", f"Failed to export cards: {e}")
            return

        QMessageBox.information(self, "Export Complete", f"Cards exported to {path}")

    def show_preferences(self):
        dialog = PreferencesDialog(self.scheduler, self)
        dialog.preferences_saved.connect(self.apply_preferences)
        dialog.exec()

    def apply_preferences(self):
        try:
            evicted = self.scheduler.tags.resize(config.get_tag_cache_size())
        except CardwiseError as e:
            QMessageBox.warning(self, "Preferences", f"Could not resize the tag cache: {e}")
        else:
            if evicted:
                print(f"Tag cache resized, dropped {evicted} least used tags")
        self.scheduler.repo.days = StudyTime(config.get_rollover_hour())
        attachment_player().set_enabled(config.is_audio_enabled())
        self.stats_screen.refresh()


def main():
    """Main application entry point."""
    app = QApplication(sys.argv)
    app.setApplicationName("Cardwise")
    app.setOrganizationName("Cardwise")

    window = MainWindow()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
