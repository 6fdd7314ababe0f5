"""Calendar filtering: time parsing, range specs, matching and feed transform."""
