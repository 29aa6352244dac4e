"""
Account authentication and credential recovery.

This package provides the controllers behind the login, forgot-password and
privileged-access screens. The screens themselves are not part of this
package: a presentation shell subscribes to a controller's state, renders it,
and forwards user actions to the controller.

Context
-------
A user logs in with an email address or phone number and a password. A user
who has forgotten their password asks for a reset token, which is sent to
them out of band and is valid for a fixed window; redeeming the token with a
new password (entered twice, and strong enough) resets it. An administrator
must additionally pass a one-time code challenge before elevated access is
granted; the code can be resent once a cooldown has elapsed.

The controllers depend on three collaborators, described in
:mod:`authflow.services`: a credential store, a recovery token issuer, and a
one-time code channel. In-memory implementations are provided for
demonstrations and tests.

All controllers run on a single asyncio event loop. They suspend only while
waiting on a collaborator, and refuse a second request for the same operation
while one is outstanding.
"""
