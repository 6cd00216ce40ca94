"""
Account flows service.

A Flask application that provides the browser-facing account journeys: signup
by e-mail verification, onboarding (directly or through an external identity
provider), login and logout, password reset, password and profile photo
management, two-factor enrollment, and a theme preference switch.

Context
-------
Most of these journeys span several requests. Between requests, the facts that
a journey depends on (the e-mail address being onboarded, the username whose
password is being reset, the provider identity being linked, or a session that
still awaits its second factor) are carried in a short-lived signed cookie,
the *verification* cookie. Entry into the later steps of a journey is gated by
one-time codes that are persisted per ``(type, target)`` pair and delivered by
e-mail or by an authenticator app.

The authenticated session is a separate cookie that carries only the ID of a
persisted session record. The record, not the cookie, decides whether the
session is still valid.
"""
