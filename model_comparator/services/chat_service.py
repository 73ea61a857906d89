# model_comparator/services/chat_service.py
from __future__ import annotations

import logging
import os
from typing import Any, Optional

from ..automation.context import RunContext

LOG = logging.getLogger("model_comparator.chat")


class ChatService:
    """
    Chat surface actions of the target site on top of the UI driver.
    Selectors come from ctx.site, so markup changes are a config edit.
    """

    def __init__(self, ctx: RunContext):
        self.ctx = ctx

    @property
    def driver(self):
        return self.ctx.driver

    def open_new_chat(self) -> None:
        LOG.info("Opening a new chat")
        self.driver.navigate(self.ctx.site.chat_url, self.ctx.timings.nav_timeout_ms)
        self.ctx.pause(self.ctx.timings.new_chat_settle_s)

    # Model selection
    def select_model(self, model_name: str) -> bool:
        """
        Pick `model_name` from the model dropdown by exact text.
        Returns False (dropdown dismissed) when the model is not listed.
        """
        site, t = self.ctx.site, self.ctx.timings
        LOG.info("Selecting model: %s", model_name)

        btn = self.driver.find_element(site.model_button)
        if not btn.found:
            LOG.error("Model selection button not found (%s)", site.model_button)
            return False
        self.driver.click(btn.element)
        self.ctx.pause(t.action_delay_s)

        item = self.driver.wait_for_state(_exact_text(model_name), "visible", t.model_item_timeout_ms)
        if not item.found:
            LOG.error('Model "%s" is not in the dropdown (%s); skipping', model_name, item.status)
            self.driver.press_key("Escape")
            self.ctx.pause(0.5)
            return False

        self.driver.click(item.element)
        LOG.info('Model "%s" selected', model_name)
        self.ctx.pause(t.action_delay_s)
        self._close_dropdown()
        return True

    def _dropdown_open(self) -> bool:
        dd = self.driver.find_element(self.ctx.site.model_dropdown)
        return dd.found and self.driver.is_visible(dd.element)

    def _close_dropdown(self) -> None:
        if not self._dropdown_open():
            return
        LOG.info("Dropdown still open; closing it")
        self.driver.press_key("Escape")
        self.ctx.pause(1.0)
        if self._dropdown_open():
            self.driver.click_at(0, 0)
            self.ctx.pause(1.0)

    # Asset attachment
    def _pick_attach_option(self, options: list) -> Any:
        keywords = [k.lower() for k in self.ctx.site.attach_option_keywords]
        for opt in options:
            text = (self.driver.read_text(opt) or "").lower()
            if any(k in text for k in keywords):
                return opt
        LOG.warning("No attach option matched %s; using the first option", self.ctx.site.attach_option_keywords)
        return options[0]

    def try_attach(self, asset_path: str) -> bool:
        """
        One attempt of: "+" button -> local file option -> native file chooser -> set file.
        Returns False on any miss; the retry controller decides what happens next.
        """
        site, t = self.ctx.site, self.ctx.timings
        if not os.path.exists(asset_path):
            raise FileNotFoundError(asset_path)

        add = self.driver.find_element(site.add_entry_button)
        if not add.found:
            LOG.error("Add-entry (+) button not found (%s)", site.add_entry_button)
            return False
        self.driver.click(add.element)
        self.ctx.pause(t.action_delay_s)

        options = self.driver.find_all(site.add_entry_option)
        if not options:
            LOG.error("No add-entry options found (%s)", site.add_entry_option)
            return False
        target = self._pick_attach_option(options)

        chooser = self.driver.intercept_file_selection(target, t.file_chooser_timeout_ms)
        if not chooser.found:
            LOG.error("File chooser did not open (%s)", chooser.status)
            return False

        try:
            self.driver.set_files(chooser.element, asset_path)
        except Exception as e:
            LOG.error("Setting the file on the chooser failed: %s", e)
            return False
        LOG.info("Attached %s", os.path.basename(asset_path))
        self.ctx.pause(t.action_delay_s)
        return True

    # Prompt
    def _find_prompt_input(self) -> Optional[Any]:
        for sel in self.ctx.site.prompt_inputs:
            hit = self.driver.find_element(sel)
            if hit.found:
                return hit.element
        return None

    def send_prompt(self, prompt: str) -> None:
        LOG.info("Sending prompt")
        box = self._find_prompt_input()
        if box is None:
            raise RuntimeError("Prompt input not found. Make sure the chat page has loaded and you are logged in.")
        self.driver.click(box)
        self.ctx.pause(0.3)
        self.driver.fill(box, prompt)
        self.ctx.pause(0.5)
        self.driver.press_key("Enter")
        LOG.info("Prompt sent (%d chars)", len(prompt))


def _exact_text(text: str) -> str:
    # Playwright text selector, quoted form = exact match
    return 'text="%s"' % text.replace("\\", "\\\\").replace('"', '\\"')
