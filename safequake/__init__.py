"""SafeQuake Alert - seismic proximity notifications."""
