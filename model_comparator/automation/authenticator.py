# model_comparator/automation/authenticator.py
from __future__ import annotations

import logging
from typing import Optional

from ..shared.errors import AuthenticationError
from ..shared.schemas import Credential, SessionState
from .context import RunContext

LOG = logging.getLogger("model_comparator.auth")


class SessionAuthenticator:
    """
    Login state machine for the shared browser session.

        Probe -> (authenticated) done
              -> AutoLogin -> Probe -> (authenticated) done
                                    -> ManualFallback -> Probe -> (authenticated) done
                                                               -> AuthenticationError

    The state is never cached: every probe navigates and looks at the page,
    because the site can drop a session (expiry, plan gating) at any time.
    """

    def __init__(self, ctx: RunContext, credential: Credential):
        self.ctx = ctx
        self.credential = credential

    def probe(self, timeout_ms: Optional[int] = None) -> SessionState:
        site, t = self.ctx.site, self.ctx.timings
        driver = self.ctx.driver
        LOG.info("Checking login state...")
        driver.navigate(site.chat_url, timeout_ms or t.nav_timeout_ms)
        self.ctx.pause(t.probe_settle_s)

        url = driver.current_url()
        if site.is_login_url(url):
            LOG.info("  -> redirected to login page (%s)", url)
            return SessionState.UNAUTHENTICATED

        upgrade = driver.find_element(site.upgrade_prompt)
        if upgrade.found and driver.is_visible(upgrade.element):
            LOG.info("  -> upgrade prompt visible (logged out or free plan)")
            return SessionState.UNAUTHENTICATED

        return SessionState.AUTHENTICATED

    def auto_login(self) -> bool:
        """
        Best-effort scripted login. Returns False when the form could not be driven;
        the caller re-probes either way.
        """
        site, t = self.ctx.site, self.ctx.timings
        driver = self.ctx.driver
        LOG.info("Starting automatic login...")

        driver.navigate(site.login_url, t.nav_timeout_ms)
        self.ctx.pause(t.login_page_settle_s)

        # Optional "Login with email" step
        email_btn = driver.wait_for_state(site.email_login_button, "visible", t.element_timeout_ms)
        if email_btn.found:
            driver.click(email_btn.element)
            LOG.info("  clicked 'Login with email'")
            self.ctx.pause(t.action_delay_s)
        else:
            LOG.warning("  'Login with email' button not found (%s); form may already be shown", email_btn.status)

        if not self._fill(site.identity_input, self.credential.identity, "identity"):
            return False
        if not self._fill(site.secret_input, self.credential.secret, "password"):
            return False

        submit = driver.wait_for_state(site.submit_button, "visible", t.submit_timeout_ms)
        if submit.found:
            driver.click(submit.element)
            LOG.info("  clicked login button")
        else:
            LOG.info("  login button not found; submitting with Enter")
            driver.press_key("Enter")

        LOG.info("  waiting for login to complete...")
        left = driver.wait_for_url(lambda url: not site.is_login_url(url), t.login_timeout_ms)
        if left.found:
            LOG.info("  left the login page")
        else:
            LOG.warning("  still on the login page after %ss", t.login_timeout_ms // 1000)
        self.ctx.pause(t.login_page_settle_s)
        return True

    def _fill(self, selector: str, value: str, label: str) -> bool:
        driver = self.ctx.driver
        field = driver.wait_for_state(selector, "visible", self.ctx.timings.element_timeout_ms)
        if not field.found:
            LOG.warning("  %s field not found (%s: %s); giving up on automatic login", label, selector, field.status)
            return False
        driver.click(field.element)
        self.ctx.pause(0.3)
        driver.fill(field.element, value)
        LOG.info("  entered %s", label)
        self.ctx.pause(0.5)
        return True

    def ensure_authenticated(self) -> SessionState:
        state = self.probe()
        if state is SessionState.AUTHENTICATED:
            LOG.info("Login confirmed")
            return state

        LOG.info("Not logged in; trying automatic login as %s", self.credential.identity)
        self.auto_login()
        state = self.probe(self.ctx.timings.login_timeout_ms)
        if state is SessionState.AUTHENTICATED:
            LOG.info("Login confirmed")
            return state

        LOG.warning("Automatic login failed. Log in manually in the open browser window.")
        self.ctx.ask_operator("Press Enter once you are logged in...")
        state = self.probe(self.ctx.timings.login_timeout_ms)
        if state is SessionState.AUTHENTICATED:
            LOG.info("Login confirmed")
            return state

        LOG.error("Login could not be confirmed; aborting the run")
        raise AuthenticationError("no authenticated session after automatic and manual login")
