# SPDX-License-Identifier: LGPL-3.0-or-later
# mntkeeper/core/__init__.py
