#!/usr/bin/env python3
"""
AR(1) / MA(1) / ARMA(1,1) / VAR(1) forecast comparison on Lithuanian annual data (1998-2022).

Usage
-----
    python forecaster_ARMA_VAR.py --help
    python forecaster_ARMA_VAR.py --main-data data/main_data.csv --additional-data data/additional_data.csv
    python forecaster_ARMA_VAR.py --windows "A:1998-2015:2016-2022" --no-plots

Modules
-------
The code is organized in lt_forecaster_src/; see its package docstring for the
module layout. Defaults are read from config/forecaster.yaml.
"""

if __name__ == "__main__":
    from lt_forecaster_src.main import main
    main()
