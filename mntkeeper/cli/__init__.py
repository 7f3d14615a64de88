# SPDX-License-Identifier: LGPL-3.0-or-later
# mntkeeper/cli/__init__.py
