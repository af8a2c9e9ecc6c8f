"""Configure the Icinga 2 influxdb2 feature and its TLS material."""
