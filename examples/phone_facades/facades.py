"""A small provider set used by ``describe_registry.py``."""

from facade_registry import RpcParameter, RpcReceiver, rpc


class AndroidFacade(RpcReceiver):

    @rpc("Show a quick notification.", parameters=[RpcParameter("message", str, "message to show")])
    def make_toast(self, message):
        print(message)

    @rpc("Queries the user for a text input.", returns="str", replacement="dialog_get_input")
    def get_input(self):
        return ""


class BatteryManagerFacade(RpcReceiver):

    @rpc("Starts tracking battery state.", start_event="battery")
    def battery_start_monitoring(self):
        pass

    @rpc("Stops tracking battery state.", stop_event="battery")
    def battery_stop_monitoring(self):
        pass

    @rpc("Returns the battery temperature.", returns="int", min_sdk_level=5)
    def battery_get_temperature(self):
        return 0


class EyesFreeFacade(RpcReceiver):

    @rpc("Speaks the provided message via TTS.", parameters=[RpcParameter("message", str)])
    def tts_speak(self, message):
        pass


class TextToSpeechFacade(RpcReceiver):

    @rpc("Speaks the provided message via TTS.", parameters=[RpcParameter("message", str)])
    def tts_speak(self, message):
        pass


class BluetoothLeScanFacade(RpcReceiver):

    @rpc("Starts a BLE scan.", start_event="ble_scan")
    def ble_start_scan(self):
        pass

    @rpc("Stops a BLE scan.", stop_event="ble_scan")
    def ble_stop_scan(self):
        pass
