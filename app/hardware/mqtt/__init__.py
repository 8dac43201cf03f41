"""
MQTT client construction and the fan-out wrapper.
"""
