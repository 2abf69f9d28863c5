#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Render logistic and sales labels to PDF through a ZPL rendering service.
"""

import zpl_label_exporter.cli


if __name__ == "__main__":
	zpl_label_exporter.cli.main()
