"""Tests for session intents beyond the commit/cancel core.

Covers:
- attribute selection, protection and reveal
- attachment import/export with partial failures
- expiry presets and password generation
- ssh key extraction and agent hand-off
"""

import os
from datetime import datetime, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from entryedit.config import Config, SessionSettings
from entryedit.passwordgen import GenOptions
from entryedit.session import ExpiryPreset, SessionMode
from entryedit.sshkey import KeySource


class TestAttributeEditing:
    """Attribute editor behaviour."""

    def test_first_attribute_is_selected(self, edit_session):
        state = edit_session.state
        assert state.current_attribute == "recovery"
        assert state.attribute_text == "abcd-efgh"
        assert state.attribute_editable is True

    def test_switching_flushes_previous_text(self, edit_session, sample_entry):
        """Edits are stored when another attribute is selected."""
        edit_session.set_attribute_text("changed")
        edit_session.select_attribute("pin")
        edit_session.commit()

        assert sample_entry.attributes.value("recovery") == "changed"

    def test_commit_flushes_selected_text(self, edit_session, sample_entry):
        edit_session.set_attribute_text("typed")

        edit_session.commit()

        assert sample_entry.attributes.value("recovery") == "typed"

    def test_protected_value_is_hidden_until_revealed(self, edit_session):
        edit_session.select_attribute("pin")

        assert edit_session.state.attribute_text == Config.PROTECTED_PLACEHOLDER
        assert edit_session.set_attribute_text("0000") is False

        edit_session.reveal_attribute()

        assert edit_session.state.attribute_text == "1234"
        assert edit_session.state.attribute_editable is True

    def test_hidden_protected_value_is_not_flushed(self, edit_session, sample_entry):
        """The placeholder text must never overwrite the stored value."""
        edit_session.select_attribute("pin")
        edit_session.set_title("x")

        edit_session.commit()

        assert sample_entry.attributes.value("pin") == "1234"

    def test_protect_and_unprotect(self, edit_session, sample_entry):
        edit_session.set_attribute_text("secret-code")
        edit_session.protect_attribute(True)

        assert edit_session.state.attribute_text == Config.PROTECTED_PLACEHOLDER

        edit_session.select_attribute("pin")
        edit_session.protect_attribute(False)
        edit_session.commit()

        assert sample_entry.attributes.is_protected("recovery")
        assert sample_entry.attributes.value("recovery") == "secret-code"
        assert not sample_entry.attributes.is_protected("pin")
        assert sample_entry.attributes.value("pin") == "1234"

    def test_insert_attribute_names(self, edit_session):
        first = edit_session.insert_attribute()
        second = edit_session.insert_attribute()

        assert first == "New attribute"
        assert second == "New attribute 1"
        assert edit_session.state.current_attribute == "New attribute 1"

    def test_rename_to_reserved_name_reports_error(self, edit_session, messages):
        assert edit_session.rename_attribute("recovery", "Password") is False
        assert messages.of_level("error")

    def test_rename_follows_selection(self, edit_session, sample_entry):
        edit_session.rename_attribute("recovery", "recovery-codes")

        assert edit_session.state.current_attribute == "recovery-codes"
        edit_session.commit()
        assert sample_entry.attributes.keys() == ["recovery-codes", "pin"]

    def test_remove_selected_attribute(self, edit_session):
        edit_session.remove_attribute()

        state = edit_session.state
        assert state.attributes == ("pin",)
        assert state.current_attribute is None
        assert state.attribute_editable is False


class TestAttachmentIntents:
    """Attachment import, export and preview."""

    def test_insert_attachments_partial_failure(self, edit_session, tmp_path, messages):
        """Readable files are attached, failures reported together."""
        good = tmp_path / "good.txt"
        good.write_bytes(b"data")
        missing = tmp_path / "missing.txt"

        added = edit_session.insert_attachments([str(good), str(missing)])

        assert added == ["good.txt"]
        assert "good.txt" in edit_session.state.attachments
        errors = messages.of_level("error")
        assert len(errors) == 1
        assert errors[0].startswith("Unable to open files:")
        assert "missing.txt" in errors[0]

    def test_remove_attachments(self, edit_session, sample_entry):
        edit_session.remove_attachments(["id_ed25519.pub"])
        edit_session.commit()

        assert len(sample_entry.attachments) == 0

    def test_save_attachment(self, edit_session, tmp_path):
        path = tmp_path / "key.pub"

        assert edit_session.save_attachment("id_ed25519.pub", str(path)) is True
        assert path.read_bytes() == b"ssh-ed25519 AAAA test"

    def test_save_attachment_failure(self, edit_session, tmp_path, messages):
        path = tmp_path / "nope" / "key.pub"

        assert edit_session.save_attachment("id_ed25519.pub", str(path)) is False
        assert messages.of_level("error")[0].startswith("Unable to save the attachment")

    def test_save_attachments_creates_directory(self, edit_session, tmp_path):
        target = tmp_path / "export"
        edit_session.add_attachment("b.txt", b"bee")

        assert edit_session.save_attachments(["id_ed25519.pub", "b.txt"], str(target))
        assert sorted(os.listdir(target)) == ["b.txt", "id_ed25519.pub"]

    def test_save_attachments_skips_declined_overwrite(self, edit_session, tmp_path):
        existing = tmp_path / "id_ed25519.pub"
        existing.write_bytes(b"keep me")

        edit_session.save_attachments(
            ["id_ed25519.pub"], str(tmp_path), confirm_overwrite=lambda q: False
        )

        assert existing.read_bytes() == b"keep me"

    def test_save_attachments_cancel_aborts(self, edit_session, tmp_path):
        (tmp_path / "id_ed25519.pub").write_bytes(b"old")
        edit_session.add_attachment("z.txt", b"zed")

        result = edit_session.save_attachments(
            ["id_ed25519.pub", "z.txt"], str(tmp_path), confirm_overwrite=lambda q: None
        )

        assert result is False
        assert not (tmp_path / "z.txt").exists()

    def test_save_attachments_uses_configured_directory(
        self, session, sample_entry, tmp_path
    ):
        """Without a directory, attachments go to the configured one."""
        session.load(sample_entry, settings=SessionSettings(attachment_dir=str(tmp_path)))

        assert session.save_attachments(["id_ed25519.pub"]) is True
        assert (tmp_path / "id_ed25519.pub").read_bytes() == b"ssh-ed25519 AAAA test"

    def test_save_attachments_without_any_directory(self, edit_session, messages):
        assert edit_session.save_attachments(["id_ed25519.pub"]) is False
        assert messages.of_level("error") == ["No directory selected for the attachments."]

    def test_open_attachments_writes_previews(self, edit_session, previews):
        paths = edit_session.open_attachments(["id_ed25519.pub"])

        assert paths == previews.paths
        with open(paths[0], "rb") as f:
            assert f.read() == b"ssh-ed25519 AAAA test"

    def test_attachments_readable_in_history_view(
        self, session, entry_with_history, settings, tmp_path
    ):
        """Saving attachments is allowed from a read-only view."""
        session.load(entry_with_history.history[0], SessionMode.HISTORY, settings=settings)

        assert session.save_attachment("id_ed25519.pub", str(tmp_path / "k"))
        assert session.remove_attachments(["id_ed25519.pub"]) is False


class TestExpiryAndPasswords:
    """Expiry presets and generated passwords."""

    @pytest.mark.parametrize(
        "preset, expected",
        [
            (ExpiryPreset.TOMORROW, datetime(2024, 1, 31, 9, tzinfo=timezone.utc)),
            (ExpiryPreset.TWO_WEEKS, datetime(2024, 2, 13, 9, tzinfo=timezone.utc)),
            (ExpiryPreset.ONE_MONTH, datetime(2024, 2, 29, 9, tzinfo=timezone.utc)),
            (ExpiryPreset.SIX_MONTHS, datetime(2024, 7, 30, 9, tzinfo=timezone.utc)),
            (ExpiryPreset.ONE_YEAR, datetime(2025, 1, 30, 9, tzinfo=timezone.utc)),
        ],
    )
    def test_presets(self, edit_session, preset, expected):
        now = datetime(2024, 1, 30, 9, tzinfo=timezone.utc)

        edit_session.use_expiry_preset(preset, now=now)

        assert edit_session.state.expires is True
        assert edit_session.state.expiry_time == expected

    def test_generate_password_fills_both_fields(self, edit_session, sample_entry):
        edit_session.generate_password(GenOptions(length=24))

        state = edit_session.state
        assert len(state.password) == 24
        assert state.password == state.password_repeat
        assert edit_session.commit() is True
        assert sample_entry.password == state.password

    def test_generate_password_error_is_reported(self, edit_session, messages):
        assert edit_session.generate_password(GenOptions(length=1)) is False
        assert messages.of_level("error")
        assert edit_session.state.password == "GitHubToken456!"


def _openssh_bytes(private_key) -> bytes:
    return private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.OpenSSH,
        serialization.NoEncryption(),
    )


def _encrypted_pem(password: bytes) -> bytes:
    return ec.generate_private_key(ec.SECP256R1()).private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.BestAvailableEncryption(password),
    )


class TestSSHAgent:
    """Key extraction from attachments and files."""

    def test_key_from_attachment(self, edit_session):
        private_key = ed25519.Ed25519PrivateKey.generate()
        edit_session.add_attachment("id_ed25519", _openssh_bytes(private_key))

        key = edit_session.ssh_key(KeySource(attachment="id_ed25519"))

        assert key is not None
        assert key.key_type == "ssh-ed25519"

    def test_missing_attachment_yields_nothing(self, edit_session, messages):
        assert edit_session.ssh_key(KeySource(attachment="absent")) is None
        assert messages.messages == []

    def test_parse_failure_is_reported(self, edit_session, messages):
        key = edit_session.ssh_key(KeySource(attachment="id_ed25519.pub"))

        assert key is None
        assert messages.of_level("error") == ["Unsupported private key format"]

    def test_external_file_too_large(self, edit_session, tmp_path, messages):
        path = tmp_path / "huge"
        path.write_bytes(b"x" * (Config.MAX_PRIVATE_KEY_BYTES + 1))

        assert edit_session.ssh_key(KeySource(file_path=str(path))) is None
        assert messages.of_level("error") == ["File too large to be a private key"]

    def test_external_file_missing(self, edit_session, tmp_path, messages):
        assert edit_session.ssh_key(KeySource(file_path=str(tmp_path / "x"))) is None
        assert messages.of_level("error") == ["Failed to open private key"]

    def test_disabled_without_setting(self, session, sample_entry):
        session.load(sample_entry, settings=SessionSettings(ssh_agent_enabled=False))

        assert session.ssh_key(KeySource(attachment="id_ed25519.pub")) is None

    def test_add_encrypted_key_uses_entry_password(self, edit_session, agent):
        """Encrypted keys are unlocked with the entry's password."""
        private_key = ec.generate_private_key(ec.SECP256R1())
        data = private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.BestAvailableEncryption(b"GitHubToken456!"),
        )
        edit_session.add_attachment("id_ecdsa", data)

        assert edit_session.add_key_to_agent(KeySource(attachment="id_ecdsa"), lifetime=60)
        assert len(agent.identities) == 1
        assert agent.identities[0][1:] == (60, False)

    def test_agent_not_running(self, edit_session, agent, messages):
        agent.running = False
        edit_session.add_attachment(
            "id_ed25519", _openssh_bytes(ed25519.Ed25519PrivateKey.generate())
        )

        assert edit_session.add_key_to_agent(KeySource(attachment="id_ed25519")) is False
        assert messages.of_level("error") == ["No SSH agent is running."]

    def test_remove_key_from_agent(self, edit_session, agent):
        edit_session.add_attachment(
            "id_ed25519", _openssh_bytes(ed25519.Ed25519PrivateKey.generate())
        )
        source = KeySource(attachment="id_ed25519")
        edit_session.add_key_to_agent(source)

        assert edit_session.remove_key_from_agent(source) is True
        assert agent.identities == []

    def test_copy_public_key(self, edit_session, monkeypatch):
        copied = []
        monkeypatch.setattr(
            "entryedit.session.copy_to_clipboard", lambda text: copied.append(text) or True
        )
        private_key = ed25519.Ed25519PrivateKey.generate()
        edit_session.add_attachment("id_ed25519", _openssh_bytes(private_key))

        assert edit_session.copy_public_key(KeySource(attachment="id_ed25519"))
        assert copied[0].startswith("ssh-ed25519 ")

    def test_locked_key_public_half_is_not_copied(self, edit_session, monkeypatch, messages):
        """An encrypted PEM key has no public key to copy before decryption."""
        copied = []
        monkeypatch.setattr(
            "entryedit.session.copy_to_clipboard", lambda text: copied.append(text) or True
        )
        edit_session.add_attachment("id_ecdsa", _encrypted_pem(b"GitHubToken456!"))

        assert edit_session.copy_public_key(KeySource(attachment="id_ecdsa")) is False
        assert copied == []
        assert messages.of_level("error") == [
            "Public key unavailable until the key is decrypted"
        ]

    def test_remove_locked_key_from_agent(self, edit_session, agent):
        """Removing an encrypted PEM key unlocks it to find its identity."""
        edit_session.add_attachment("id_ecdsa", _encrypted_pem(b"GitHubToken456!"))
        source = KeySource(attachment="id_ecdsa")
        edit_session.add_key_to_agent(source)

        assert edit_session.remove_key_from_agent(source) is True
        assert agent.identities == []
