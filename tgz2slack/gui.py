#!/usr/bin/env python3
"""GTK user interface for tgz2slack."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

import gi

from .converter import ConversionResult, TgzPackageConverter
from .installer import PackageInstaller
from .metadata import PackageMetadata
from .utils import Tgz2SlackError

gi.require_version("Gdk", "3.0")
gi.require_version("Gtk", "3.0")
from gi.repository import Gdk, GLib, Gtk  # noqa: E402

PACKAGE_PATTERNS = ("*.tgz", "*.taz", "*.tar", "*.tar.gz", "*.tar.Z", "*.tar.z", "*.tar.bz", "*.tar.bz2")


class Tgz2SlackWindow(Gtk.Window):
    """Main window: inspect a tarball, preview its slack-desc, convert and install."""

    def __init__(self, package_path: Optional[Path], logger: Optional[logging.Logger] = None) -> None:
        super().__init__(title="tgz2slack")
        self.set_default_size(900, 680)
        self.set_border_width(14)

        self.logger = logger or logging.getLogger("tgz2slack.gui")
        self.converter = TgzPackageConverter(self.logger, verbose=1)
        self.installer = PackageInstaller(self.logger)

        self.package_path: Optional[Path] = package_path
        self.metadata: Optional[PackageMetadata] = None
        self.output_dir: Path = Path.cwd()
        self._busy = False

        self._apply_theme()
        self._build_ui()

        if self.package_path:
            self._load_metadata_async(self.package_path)

    def _apply_theme(self) -> None:
        settings = Gtk.Settings.get_default()
        if settings:
            settings.set_property("gtk-application-prefer-dark-theme", True)

        css = b"""
        .title {
            font-size: 20px;
            font-weight: 700;
        }
        .preview, .preview text {
            font-family: monospace;
        }
        """
        provider = Gtk.CssProvider()
        provider.load_from_data(css)
        screen = Gdk.Screen.get_default()
        if screen:
            Gtk.StyleContext.add_provider_for_screen(
                screen,
                provider,
                Gtk.STYLE_PROVIDER_PRIORITY_APPLICATION,
            )

    def _build_ui(self) -> None:
        root = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=10)
        self.add(root)

        title = Gtk.Label(label="tgz2slack")
        title.get_style_context().add_class("title")
        title.set_halign(Gtk.Align.START)
        root.pack_start(title, False, False, 0)

        grid = Gtk.Grid(column_spacing=10, row_spacing=6)
        root.pack_start(grid, False, False, 0)

        self.path_entry = Gtk.Entry()
        self.path_entry.set_editable(False)
        self.path_entry.set_hexpand(True)
        self.path_entry.set_placeholder_text("No package file selected")

        self.name_value = self._value_label()
        self.version_value = self._value_label()
        self.summary_value = self._value_label()
        self.files_value = self._value_label()
        self.scripts_value = self._value_label()

        rows = [
            ("Selected package", self.path_entry),
            ("Name", self.name_value),
            ("Version", self.version_value),
            ("Summary", self.summary_value),
            ("Files / conffiles", self.files_value),
            ("Scripts", self.scripts_value),
        ]
        for row, (caption, widget) in enumerate(rows):
            label = Gtk.Label(label=caption)
            label.set_xalign(0)
            grid.attach(label, 0, row, 1, 1)
            grid.attach(widget, 1, row, 1, 1)

        paned = Gtk.Paned(orientation=Gtk.Orientation.VERTICAL)
        root.pack_start(paned, True, True, 0)

        self.preview_buffer = Gtk.TextBuffer()
        preview_view = Gtk.TextView(buffer=self.preview_buffer)
        preview_view.set_editable(False)
        preview_view.set_monospace(True)
        preview_view.get_style_context().add_class("preview")
        paned.pack1(self._framed("slack-desc preview", preview_view), True, False)

        self.log_buffer = Gtk.TextBuffer()
        self.log_view = Gtk.TextView(buffer=self.log_buffer)
        self.log_view.set_editable(False)
        self.log_view.set_monospace(True)
        self.log_view.set_wrap_mode(Gtk.WrapMode.WORD_CHAR)
        paned.pack2(self._framed("Operation log", self.log_view), True, False)

        status_box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=8)
        root.pack_start(status_box, False, False, 0)
        self.spinner = Gtk.Spinner()
        status_box.pack_start(self.spinner, False, False, 0)
        self.status_label = Gtk.Label(label="Idle")
        self.status_label.set_xalign(0)
        status_box.pack_start(self.status_label, True, True, 0)

        actions = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=8)
        root.pack_start(actions, False, False, 0)

        open_button = Gtk.Button(label="Open package")
        open_button.connect("clicked", self._on_open_clicked)
        actions.pack_start(open_button, False, False, 0)

        self.convert_button = Gtk.Button(label="Convert")
        self.convert_button.connect("clicked", self._on_convert_clicked, False)
        self.convert_button.set_sensitive(False)
        actions.pack_start(self.convert_button, False, False, 0)

        self.install_button = Gtk.Button(label="Convert and Install")
        self.install_button.connect("clicked", self._on_convert_clicked, True)
        self.install_button.set_sensitive(False)
        actions.pack_start(self.install_button, False, False, 0)

        close_button = Gtk.Button(label="Close")
        close_button.connect("clicked", self._on_close_clicked)
        actions.pack_end(close_button, False, False, 0)

    def _value_label(self) -> Gtk.Label:
        label = Gtk.Label(label="-")
        label.set_xalign(0)
        label.set_line_wrap(True)
        return label

    def _framed(self, caption: str, child: Gtk.Widget) -> Gtk.Frame:
        scroll = Gtk.ScrolledWindow()
        scroll.set_policy(Gtk.PolicyType.AUTOMATIC, Gtk.PolicyType.AUTOMATIC)
        scroll.add(child)
        frame = Gtk.Frame(label=caption)
        frame.add(scroll)
        return frame

    def _on_open_clicked(self, _button: Gtk.Button) -> None:
        dialog = Gtk.FileChooserDialog(
            title="Select package file",
            parent=self,
            action=Gtk.FileChooserAction.OPEN,
        )
        dialog.add_buttons(
            Gtk.STOCK_CANCEL,
            Gtk.ResponseType.CANCEL,
            Gtk.STOCK_OPEN,
            Gtk.ResponseType.OK,
        )

        package_filter = Gtk.FileFilter()
        package_filter.set_name("Tarball packages")
        for pattern in PACKAGE_PATTERNS:
            package_filter.add_pattern(pattern)
        dialog.add_filter(package_filter)

        response = dialog.run()
        selected = dialog.get_filename() if response == Gtk.ResponseType.OK else None
        dialog.destroy()

        if selected:
            self._load_metadata_async(Path(selected))

    def _load_metadata_async(self, package_path: Path) -> None:
        if self._busy:
            return

        self.package_path = package_path.expanduser().resolve()
        self.path_entry.set_text(str(self.package_path))
        self._append_log(f"Loaded file: {self.package_path}")
        self._set_busy(True, "Reading package metadata...")

        def worker() -> None:
            try:
                metadata = self.converter.scan(self.package_path)
                preview = self.converter.render_slack_desc(metadata)
                GLib.idle_add(self._set_metadata, metadata, preview)
                GLib.idle_add(self._append_log, "Metadata parsed successfully")
            except Tgz2SlackError as exc:
                GLib.idle_add(self._set_actions_sensitive, False)
                GLib.idle_add(self._show_dialog, Gtk.MessageType.ERROR, "Unsupported package file", str(exc))
                GLib.idle_add(self._append_log, f"Metadata read failed: {exc}")
            finally:
                GLib.idle_add(self._set_busy, False, "Idle")

        threading.Thread(target=worker, daemon=True).start()

    def _set_metadata(self, metadata: PackageMetadata, preview: str) -> None:
        self.metadata = metadata
        self.name_value.set_text(metadata.name)
        self.version_value.set_text(metadata.version)
        self.summary_value.set_text(metadata.summary)
        self.files_value.set_text(f"{len(metadata.filelist)} / {len(metadata.conffiles)}")
        self.scripts_value.set_text(", ".join(sorted(metadata.scripts)) or "none")
        self.preview_buffer.set_text(preview)
        self._set_actions_sensitive(True)

    def _set_actions_sensitive(self, sensitive: bool) -> None:
        self.convert_button.set_sensitive(sensitive)
        self.install_button.set_sensitive(sensitive)

    def _on_convert_clicked(self, _button: Gtk.Button, install: bool) -> None:
        if self._busy or not self.package_path or not self.metadata:
            return

        self._set_actions_sensitive(False)
        self._set_busy(True, "Converting package...")

        def worker() -> None:
            result: Optional[ConversionResult] = None
            try:
                result = self.converter.convert(
                    self.package_path,
                    output_dir=self.output_dir,
                    log_callback=self._log_from_worker,
                )
                if not install:
                    GLib.idle_add(
                        self._show_dialog,
                        Gtk.MessageType.INFO,
                        "Conversion Complete",
                        f"Generated {result.package_path}",
                    )
                    return

                GLib.idle_add(self._set_busy, True, "Installing package with installpkg...")
                install_result = self.installer.install(result.package_path, log_callback=self._log_from_worker)
                if install_result.success:
                    GLib.idle_add(
                        self._show_dialog,
                        Gtk.MessageType.INFO,
                        "Installation Complete",
                        f"{result.metadata.name} {result.metadata.version} installed successfully.",
                    )
                else:
                    GLib.idle_add(self._show_dialog, Gtk.MessageType.ERROR, "Installation Failed", install_result.message)
            except Tgz2SlackError as exc:
                GLib.idle_add(self._show_dialog, Gtk.MessageType.ERROR, "Operation Failed", str(exc))
                GLib.idle_add(self._append_log, f"Error: {exc}")
            finally:
                if result is not None:
                    self.converter.cleanup_workspace(result.temp_dir)
                GLib.idle_add(self._set_busy, False, "Idle")
                GLib.idle_add(self._set_actions_sensitive, self.metadata is not None)

        threading.Thread(target=worker, daemon=True).start()

    def _on_close_clicked(self, _button: Gtk.Button) -> None:
        if self._busy:
            dialog = Gtk.MessageDialog(
                parent=self,
                flags=Gtk.DialogFlags.MODAL,
                message_type=Gtk.MessageType.WARNING,
                buttons=Gtk.ButtonsType.OK_CANCEL,
                text="An operation is currently running",
            )
            dialog.format_secondary_text("Closing now will not stop a running installpkg. Exit anyway?")
            response = dialog.run()
            dialog.destroy()
            if response != Gtk.ResponseType.OK:
                return

        Gtk.main_quit()

    def _show_dialog(self, message_type: Gtk.MessageType, title: str, details: str) -> None:
        dialog = Gtk.MessageDialog(
            parent=self,
            flags=Gtk.DialogFlags.MODAL,
            message_type=message_type,
            buttons=Gtk.ButtonsType.CLOSE,
            text=title,
        )
        dialog.format_secondary_text(details)
        dialog.run()
        dialog.destroy()

    def _append_log(self, line: str) -> None:
        self.log_buffer.insert(self.log_buffer.get_end_iter(), f"{line}\n")
        mark = self.log_buffer.create_mark(None, self.log_buffer.get_end_iter(), False)
        self.log_view.scroll_to_mark(mark, 0.0, True, 0.0, 1.0)

    def _log_from_worker(self, line: str) -> None:
        GLib.idle_add(self._append_log, line)

    def _set_busy(self, busy: bool, status: str) -> None:
        self._busy = busy
        self.status_label.set_text(status)
        if busy:
            self.spinner.start()
        else:
            self.spinner.stop()


def launch_gui(package_path: Optional[Path], logger: Optional[logging.Logger] = None) -> int:
    """Launch GTK interface."""
    win = Tgz2SlackWindow(package_path=package_path, logger=logger)
    win.connect("destroy", Gtk.main_quit)
    win.show_all()
    Gtk.main()
    return 0
