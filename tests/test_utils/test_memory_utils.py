"""Tests for memory monitoring utilities."""

import pytest
import torch
from unittest.mock import patch, MagicMock

from llama_options.utils.memory_utils import MemoryMonitor, MemorySnapshot, model_memory_gb, take_snapshot

GIB = 1024**3


def _host(available_gb=4.0, percent=50.0):
    return MagicMock(percent=percent, available=available_gb * GIB, total=8 * GIB)


class TestTakeSnapshot:
    """Test cases for reading memory figures."""

    @patch('psutil.virtual_memory', return_value=_host())
    @patch('torch.cuda.is_available', return_value=False)
    def test_no_cuda(self, mock_available, mock_virtual_memory):
        snapshot = take_snapshot()

        assert snapshot.device_allocated_gb == 0.0
        assert snapshot.device_total_gb == 0.0
        assert snapshot.device_used_percent == 0.0
        assert snapshot.host_available_gb == 4.0

    @patch('psutil.virtual_memory', return_value=_host())
    @patch('torch.cuda.get_device_properties', return_value=MagicMock(total_memory=12 * GIB))
    @patch('torch.cuda.memory_reserved', return_value=4 * GIB)
    @patch('torch.cuda.memory_allocated', return_value=3 * GIB)
    @patch('torch.cuda.is_available', return_value=True)
    def test_cuda(self, *mocks):
        snapshot = take_snapshot()

        assert snapshot.device_allocated_gb == 3.0
        assert snapshot.device_reserved_gb == 4.0
        assert snapshot.device_used_percent == 25.0


def test_describe():
    snapshot = MemorySnapshot(2.0, 2.5, 8.0, 40.0, 6.0)
    assert snapshot.describe() == "GPU: 2.00GB (25.0%), Cached: 2.50GB, System: 40.0% used, 6.00GB free"


class TestMemoryMonitor:
    """Test cases for MemoryMonitor class."""

    @patch('psutil.virtual_memory', return_value=_host())
    @patch('torch.cuda.memory_allocated', return_value=7 * GIB)
    @patch('torch.cuda.is_available', return_value=True)
    def test_device_limit_exceeded(self, mock_available, mock_allocated, mock_virtual_memory):
        monitor = MemoryMonitor(device_limit_gb=6.0)

        with patch('torch.cuda.memory_reserved', return_value=0), patch(
            'torch.cuda.get_device_properties', return_value=MagicMock(total_memory=12 * GIB)
        ):
            with pytest.raises(RuntimeError, match="GPU memory limit exceeded during loading x"):
                monitor.enforce_device_limit("loading x")

    @patch('psutil.virtual_memory', return_value=_host())
    @patch('torch.cuda.is_available', return_value=False)
    def test_device_limit_without_cuda(self, mock_available, mock_virtual_memory):
        MemoryMonitor(device_limit_gb=0.5).enforce_device_limit("loading x")

    @patch('psutil.virtual_memory', return_value=_host(available_gb=4.0))
    @patch('torch.cuda.is_available', return_value=False)
    def test_can_lock_memory(self, mock_available, mock_virtual_memory):
        """Test pinning checks against available system memory."""
        monitor = MemoryMonitor()

        assert monitor.can_lock_memory(2.0) is True
        assert monitor.can_lock_memory(6.0) is False

    @patch('psutil.virtual_memory', return_value=_host())
    @patch('torch.cuda.is_available', return_value=False)
    def test_log_memory_usage(self, mock_available, mock_virtual_memory):
        logger = MagicMock()

        snapshot = MemoryMonitor().log_memory_usage("Before model loading", logger)

        logger.info.assert_called_once_with("[%s] %s", "Before model loading", snapshot.describe())

    @patch('torch.cuda.is_available', return_value=True)
    @patch('torch.cuda.empty_cache')
    @patch('torch.cuda.ipc_collect')
    @patch('torch.cuda.synchronize')
    def test_release(self, mock_sync, mock_ipc, mock_empty, mock_available):
        MemoryMonitor().release()

        mock_empty.assert_called_once()
        mock_sync.assert_called_once()


def test_model_memory_gb():
    """Test parameter and buffer size accounting."""
    model = torch.nn.Linear(1024, 256, bias=False)
    model.register_buffer("scale", torch.zeros(256))

    expected = (1024 * 256 * 4 + 256 * 4) / GIB
    assert model_memory_gb(model) == pytest.approx(expected)
