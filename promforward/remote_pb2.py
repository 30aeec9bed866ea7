"""Protobuf message classes for the Prometheus remote write API.

Equivalent to the generated code for prompb/types.proto and prompb/remote.proto,
restricted to the messages the forwarder sends:

    message WriteRequest { repeated TimeSeries timeseries = 1; }
    message TimeSeries   { repeated Label labels = 1; repeated Sample samples = 2; }
    message Label        { string name = 1; string value = 2; }
    message Sample       { double value = 1; int64 timestamp = 2; }

The descriptors live in a private pool so they never clash with another
package registering the `prometheus` proto package.
"""
from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_Field = descriptor_pb2.FieldDescriptorProto

_FILE = descriptor_pb2.FileDescriptorProto(
    name="promforward/remote.proto",
    package="prometheus",
    syntax="proto3",
)


def _add_message(name, fields):
    message = _FILE.message_type.add(name=name)
    for number, field_name, field_type, label, type_name in fields:
        field = message.field.add(name=field_name, number=number, type=field_type, label=label)
        if type_name:
            field.type_name = type_name


_add_message("Label", [
    (1, "name", _Field.TYPE_STRING, _Field.LABEL_OPTIONAL, None),
    (2, "value", _Field.TYPE_STRING, _Field.LABEL_OPTIONAL, None),
])
_add_message("Sample", [
    (1, "value", _Field.TYPE_DOUBLE, _Field.LABEL_OPTIONAL, None),
    (2, "timestamp", _Field.TYPE_INT64, _Field.LABEL_OPTIONAL, None),
])
_add_message("TimeSeries", [
    (1, "labels", _Field.TYPE_MESSAGE, _Field.LABEL_REPEATED, ".prometheus.Label"),
    (2, "samples", _Field.TYPE_MESSAGE, _Field.LABEL_REPEATED, ".prometheus.Sample"),
])
_add_message("WriteRequest", [
    (1, "timeseries", _Field.TYPE_MESSAGE, _Field.LABEL_REPEATED, ".prometheus.TimeSeries"),
])

_POOL = descriptor_pool.DescriptorPool()
DESCRIPTOR = _POOL.AddSerializedFile(_FILE.SerializeToString())

Label = message_factory.GetMessageClass(_POOL.FindMessageTypeByName("prometheus.Label"))
Sample = message_factory.GetMessageClass(_POOL.FindMessageTypeByName("prometheus.Sample"))
TimeSeries = message_factory.GetMessageClass(_POOL.FindMessageTypeByName("prometheus.TimeSeries"))
WriteRequest = message_factory.GetMessageClass(_POOL.FindMessageTypeByName("prometheus.WriteRequest"))
