"""Adaptador LoRa: webhooks de uplink (ChirpStack) -> MQTT.

Estructura modular:
- config.py: configuración desde entorno/.env
- uplink/: decodificación tolerante y topics
- mqtt/: publicador de larga vida
- endpoints/: health y uplink
- main.py: app FastAPI
- cli.py: arranque y apagado ordenado
"""
