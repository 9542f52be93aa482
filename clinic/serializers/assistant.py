from rest_framework import serializers


class ChatMessageSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=['user', 'assistant', 'system'])
    content = serializers.JSONField(required=False)
    parts = serializers.ListField(child=serializers.DictField(), required=False)


class ChatRequestSerializer(serializers.Serializer):
    messages = ChatMessageSerializer(many=True, allow_empty=False, error_messages={
        'empty': 'No messages provided',
        'required': 'No messages provided',
    })


class ToolInvokeSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=64)
    args = serializers.DictField(required=False, default=dict)
